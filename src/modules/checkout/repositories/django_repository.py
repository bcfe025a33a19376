"""Django ORM implementation of the Sale repository.

Marker updates use ``QuerySet.update`` so a concurrent reconciliation run
never overwrites unrelated columns of the sale.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from modules.checkout.constants import DiscountStatus
from modules.checkout.models import Sale
from modules.checkout.repositories.interfaces import ISaleRepository

logger = structlog.get_logger(__name__)


class SaleDjangoRepository(ISaleRepository):
    """Concrete Sale repository backed by Django ORM."""

    def create(self, data: Dict[str, Any]) -> Sale:
        sale = Sale(**data)
        sale.save()
        logger.info(
            "sale.created",
            sale_id=str(sale.id),
            cart_id=str(sale.cart_id),
            payment_type=sale.payment_type,
        )
        return sale

    def get_by_id(self, id: str) -> Optional[Sale]:
        """Retrieve a sale; ``None`` for unknown or malformed IDs."""
        try:
            return Sale.objects.select_related("client").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Sale]:
        try:
            return Sale.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None):
        queryset = Sale.objects.select_related("client").order_by("-created_at", "-id")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Sale) -> Sale:
        entity.save()
        return entity

    def delete(self, id: str) -> bool:
        """Sales are financial records and are never deleted."""
        return False

    def exists_for_cart(self, cart_id: str) -> bool:
        return Sale.objects.filter(cart_id=cart_id).exists()

    def update_markers(self, sale: Sale, **fields: Any) -> Sale:
        now = timezone.now()
        Sale.objects.filter(id=sale.id).update(**fields, updated_at=now)
        for name, value in fields.items():
            setattr(sale, name, value)
        sale.updated_at = now
        logger.info("sale.markers_updated", sale_id=str(sale.id), **fields)
        return sale

    def record_reconcile_error(self, sale: Sale, error: str) -> None:
        Sale.objects.filter(id=sale.id).update(
            reconcile_attempts=F("reconcile_attempts") + 1,
            last_reconcile_error=error[:1000],
            updated_at=timezone.now(),
        )
        sale.reconcile_attempts += 1
        sale.last_reconcile_error = error[:1000]

    def list_pending_reconciliation(self, limit: Optional[int] = None) -> List[Sale]:
        queryset = Sale.objects.filter(
            Q(discount_status=DiscountStatus.PENDING) | Q(cart_archived=False)
        ).order_by("created_at")
        if limit:
            queryset = queryset[:limit]
        return list(queryset)
