"""Django ORM implementation of the Client repository.

Missing rows are reported as ``None``; the Service Layer decides how to
translate them.  Grant usage is a conditional ``UPDATE ... WHERE status =
'ACTIVE'`` so two sales can never both consume the same code.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.clients.constants import GrantStatus
from modules.clients.models import Client, DiscountCodeGrant
from modules.clients.repositories.interfaces import IClientRepository

logger = structlog.get_logger(__name__)


class ClientDjangoRepository(IClientRepository):
    """Concrete Client repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Client]:
        """Retrieve a live client; ``None`` for unknown, deleted or malformed IDs."""
        try:
            return Client.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Client]:
        queryset = Client.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Client) -> Client:
        entity.save()
        logger.info("client.saved", client_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        client = self.get_by_id(id)
        if not client:
            return False
        client.delete()
        logger.info("client.soft_deleted", client_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def get_grant(self, client_id: str, code_id: str) -> Optional[DiscountCodeGrant]:
        try:
            return DiscountCodeGrant.objects.filter(
                client_id=client_id, code_id=code_id
            ).first()
        except (ValueError, ValidationError):
            return None

    def find_grant_by_code(
        self, client_id: str, code: str
    ) -> Optional[DiscountCodeGrant]:
        """Prefer an ACTIVE grant when the same code was won more than once."""
        try:
            grants = DiscountCodeGrant.objects.filter(
                client_id=client_id, code__iexact=code.strip()
            )
            return (
                grants.filter(status=GrantStatus.ACTIVE).order_by("expires_at").first()
                or grants.first()
            )
        except (ValueError, ValidationError):
            return None

    def mark_grant_used(self, client_id: str, code_id: str, order_id: UUID) -> bool:
        """A grant that expired after it was attached to a cart is still honoured."""
        updated = DiscountCodeGrant.objects.filter(
            client_id=client_id,
            code_id=code_id,
            status__in=[GrantStatus.ACTIVE, GrantStatus.EXPIRED],
        ).update(
            status=GrantStatus.USED,
            used_at=timezone.now(),
            used_in_order_id=order_id,
            updated_at=timezone.now(),
        )
        return updated == 1

    def mark_grant_expired(self, grant: DiscountCodeGrant) -> None:
        DiscountCodeGrant.objects.filter(
            id=grant.id, status=GrantStatus.ACTIVE
        ).update(status=GrantStatus.EXPIRED, updated_at=timezone.now())
        grant.status = GrantStatus.EXPIRED
        logger.info(
            "client.grant_expired",
            client_id=str(grant.client_id),
            code_id=grant.code_id,
        )
