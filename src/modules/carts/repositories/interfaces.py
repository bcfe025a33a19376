"""Cart repository interface.

Persistence contract for the Cart aggregate (Cart + CartItems).  No business
rules live behind it: quantity bounds, pricing and totals are enforced by
``CartService``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.carts.models import Cart, CartItem


class ICartRepository(IRepository["Cart"]):
    """Repository contract for the Cart aggregate root."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Cart]:
        """Retrieve a cart with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_active_for_client(self, client_id: str) -> Optional[Cart]:
        """Retrieve the client's ACTIVE cart, if any."""

    @abstractmethod
    def create_active(self, client_id: str) -> Cart:
        """Insert an empty ACTIVE cart.

        Raises ``IntegrityError`` when the client already has one.
        """

    @abstractmethod
    def has_order(self, cart: Cart) -> bool:
        """Whether a Sale was already placed from this cart."""

    @abstractmethod
    def list_items(self, cart: Cart) -> List[CartItem]:
        """Return the cart lines in insertion order."""

    @abstractmethod
    def get_item(
        self, cart: Cart, item_id: str, item_type: Optional[str] = None
    ) -> Optional[CartItem]:
        """Retrieve a line by catalog item id (and type, when given)."""

    @abstractmethod
    def add_item(self, cart: Cart, data: Dict[str, Any]) -> CartItem:
        """Append a line (``item_type``, ``item_id``, ``item_name``,
        ``quantity``, ``unit_price``)."""

    @abstractmethod
    def save_item(self, item: CartItem) -> CartItem:
        """Persist a modified line."""

    @abstractmethod
    def delete_item(self, item: CartItem) -> None:
        """Remove a line."""

    @abstractmethod
    def clients_with_duplicate_active_carts(self) -> List[str]:
        """Client ids owning more than one ACTIVE cart."""

    @abstractmethod
    def list_active_for_client(self, client_id: str) -> List[Cart]:
        """All ACTIVE carts of a client, newest first, locked."""
