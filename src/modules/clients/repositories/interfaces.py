"""Client repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.clients.models import Client, DiscountCodeGrant


class IClientRepository(IRepository["Client"]):
    """Repository contract for clients and their code grants."""

    @abstractmethod
    def get_grant(self, client_id: str, code_id: str) -> Optional[DiscountCodeGrant]:
        """Retrieve a grant by its ``code_id`` for one client."""

    @abstractmethod
    def find_grant_by_code(
        self, client_id: str, code: str
    ) -> Optional[DiscountCodeGrant]:
        """Retrieve a client's grant by the code the buyer typed."""

    @abstractmethod
    def mark_grant_used(self, client_id: str, code_id: str, order_id: UUID) -> bool:
        """Flip an unused grant to USED; ``False`` when it was already USED."""

    @abstractmethod
    def mark_grant_expired(self, grant: DiscountCodeGrant) -> None:
        """Flip an ACTIVE grant to EXPIRED."""
