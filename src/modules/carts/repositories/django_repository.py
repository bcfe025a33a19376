"""Django ORM implementation of the Cart repository.

Reads prefetch the lines so serializers never trigger N+1 queries.
``get_for_update`` locks the cart row; every cart mutation in the Service
Layer goes through it, so concurrent mutations on one cart serialise.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count

from modules.carts.constants import CartStatus
from modules.carts.models import Cart, CartItem
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    """Concrete Cart repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Cart]:
        """Retrieve a cart with its lines; ``None`` for unknown or malformed IDs."""
        try:
            return Cart.objects.prefetch_related("items").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Cart]:
        try:
            return Cart.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_active_for_client(self, client_id: str) -> Optional[Cart]:
        try:
            return (
                Cart.objects.prefetch_related("items")
                .filter(client_id=client_id, status=CartStatus.ACTIVE)
                .order_by("-created_at")
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def has_order(self, cart: Cart) -> bool:
        return cart.sales.exists()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Cart]:
        queryset = Cart.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create_active(self, client_id: str) -> Cart:
        cart = Cart.objects.create(client_id=client_id, status=CartStatus.ACTIVE)
        logger.info("cart.created", cart_id=str(cart.id), client_id=str(client_id))
        return cart

    @transaction.atomic
    def save(self, entity: Cart) -> Cart:
        entity.save()
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Carts are archived, never deleted; only empty carts may be removed."""
        cart = self.get_by_id(id)
        if not cart or cart.items.exists():
            return False
        cart.delete()
        logger.info("cart.deleted", cart_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def list_items(self, cart: Cart) -> List[CartItem]:
        return list(CartItem.objects.filter(cart_id=cart.id).order_by("created_at", "id"))

    def get_item(
        self, cart: Cart, item_id: str, item_type: Optional[str] = None
    ) -> Optional[CartItem]:
        try:
            queryset = CartItem.objects.filter(cart_id=cart.id, item_id=item_id)
            if item_type is not None:
                queryset = queryset.filter(item_type=item_type)
            return queryset.first()
        except (ValueError, ValidationError):
            return None

    def add_item(self, cart: Cart, data: Dict[str, Any]) -> CartItem:
        item = CartItem(cart=cart, **data)
        item.save()
        return item

    def save_item(self, item: CartItem) -> CartItem:
        item.save()
        return item

    def delete_item(self, item: CartItem) -> None:
        item.delete()

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clients_with_duplicate_active_carts(self) -> List[str]:
        rows = (
            Cart.objects.filter(status=CartStatus.ACTIVE)
            .order_by()
            .values("client_id")
            .annotate(active_count=Count("id"))
            .filter(active_count__gt=1)
        )
        return [str(row["client_id"]) for row in rows]

    def list_active_for_client(self, client_id: str) -> List[Cart]:
        return list(
            Cart.objects.select_for_update()
            .filter(client_id=client_id, status=CartStatus.ACTIVE)
            # UUIDv7 ids break ties between carts created in the same instant.
            .order_by("-created_at", "-id")
        )
