"""Sale repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.checkout.models import Sale


class ISaleRepository(IRepository["Sale"]):
    """Repository contract for sales and their reconciliation markers."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Sale:
        """Insert a sale."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """Sales with optional ORM look-ups, newest first."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Sale]:
        """Retrieve a sale with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def exists_for_cart(self, cart_id: str) -> bool:
        """Whether a sale was already created from this cart."""

    @abstractmethod
    def update_markers(self, sale: Sale, **fields: Any) -> Sale:
        """Persist saga marker changes (``discount_status``, ``cart_archived``)."""

    @abstractmethod
    def record_reconcile_error(self, sale: Sale, error: str) -> None:
        """Count a failed reconciliation attempt."""

    @abstractmethod
    def list_pending_reconciliation(self, limit: Optional[int] = None) -> List[Sale]:
        """Sales with an unconfirmed discount or an unarchived cart."""
