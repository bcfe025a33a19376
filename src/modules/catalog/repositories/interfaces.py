"""Catalog repository interface.

The cart depends on this contract to price lines; it never queries the
catalog tables directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.catalog.dtos import PricedItemDTO


class ICatalogRepository(ABC):
    @abstractmethod
    def get_priced_item(self, item_type: str, item_id: str) -> Optional[PricedItemDTO]:
        """Resolve a sellable item; ``None`` if unknown, inactive or deleted."""
