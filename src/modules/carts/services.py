"""Cart service layer (Use Cases).

Keeps every client's shopping cart consistent:

- exactly one ACTIVE cart per client (find-or-create backed by a partial
  unique constraint, with a savepoint so a lost race re-reads the winner);
- quantity bounds ``[1, 99]`` and positive prices;
- ``CartItem.subtotal == unit_price * quantity`` and cart totals after every
  mutation;
- a cart an order was placed from never takes new lines, even when its
  archival is still pending.

Every mutation locks the cart row (``SELECT FOR UPDATE``) inside
``transaction.atomic`` so concurrent requests on one cart serialise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.carts.constants import MAX_ITEM_QUANTITY, MIN_ITEM_QUANTITY, CartStatus
from modules.carts.dtos import CleanupReportDTO
from modules.carts.exceptions import (
    CartItemNotFound,
    CartNotFound,
    CatalogItemNotFound,
    InvalidItemPrice,
    QuantityOutOfRange,
)
from modules.clients.exceptions import ClientNotFound
from modules.core.exceptions import ConflictError

if TYPE_CHECKING:
    from modules.carts.dtos import AddItemDTO, RemoveItemDTO, UpdateQuantityDTO
    from modules.carts.models import Cart
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.catalog.repositories.interfaces import ICatalogRepository
    from modules.clients.repositories.interfaces import IClientRepository

logger = structlog.get_logger(__name__)


def _check_quantity(quantity: int) -> None:
    if not MIN_ITEM_QUANTITY <= quantity <= MAX_ITEM_QUANTITY:
        raise QuantityOutOfRange.for_field(
            "quantity",
            f"Quantity must be between {MIN_ITEM_QUANTITY} and {MAX_ITEM_QUANTITY}.",
        )


class CartService:
    """Application service for cart use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        cart_repository: ICartRepository,
        client_repository: IClientRepository,
        catalog_repository: ICatalogRepository,
    ) -> None:
        self._cart_repo = cart_repository
        self._client_repo = client_repository
        self._catalog_repo = catalog_repository

    # ------------------------------------------------------------------
    # Active cart
    # ------------------------------------------------------------------

    def get_active_cart(self, client_id: UUID | str) -> Cart:
        """Return the client's ACTIVE cart, creating an empty one if needed.

        Raises:
            ClientNotFound: the client does not exist.
        """
        self._require_client(client_id)

        cart = self._current_cart(client_id)
        if cart is not None:
            return cart
        return self._create_active_cart(client_id)

    def _current_cart(self, client_id: UUID | str) -> Optional[Cart]:
        """The client's open ACTIVE cart.

        A cart an order was already placed from is closed even while it is
        still ACTIVE (its archival step failed and awaits reconciliation): it
        is archived here so new lines never land in an ordered cart.
        """
        cart = self._cart_repo.get_active_for_client(str(client_id))
        if cart is None or not self._cart_repo.has_order(cart):
            return cart

        with transaction.atomic():
            locked = self._cart_repo.get_for_update(str(cart.id))
            if locked is not None and locked.status == CartStatus.ACTIVE:
                locked.status = CartStatus.COMPLETED
                locked.completed_at = timezone.now()
                self._cart_repo.save(locked)
                logger.warning(
                    "cart.ordered_cart_archived",
                    cart_id=str(cart.id),
                    client_id=str(client_id),
                )
        return None

    def _create_active_cart(self, client_id: UUID | str) -> Cart:
        try:
            with transaction.atomic():
                self._cart_repo.create_active(str(client_id))
        except IntegrityError:
            # Another request created the ACTIVE cart first.
            logger.info("cart.create_race_lost", client_id=str(client_id))

        cart = self._cart_repo.get_active_for_client(str(client_id))
        if cart is None:
            raise ConflictError("Active cart could not be resolved, please retry.")
        return cart

    def _require_client(self, client_id: UUID | str) -> None:
        if self._client_repo.get_by_id(str(client_id)) is None:
            raise ClientNotFound(f"Client {client_id} not found.")

    def _lock_active_cart(self, client_id: UUID | str, create: bool = True) -> Cart:
        if create:
            cart_id = self.get_active_cart(client_id).id
        else:
            self._require_client(client_id)
            existing = self._current_cart(client_id)
            if existing is None:
                raise CartItemNotFound()
            cart_id = existing.id

        cart = self._cart_repo.get_for_update(str(cart_id))
        if (
            cart is None
            or cart.status != CartStatus.ACTIVE
            or self._cart_repo.has_order(cart)
        ):
            # Archived or ordered between the lookup and the lock.
            raise ConflictError("Active cart changed, please retry.")
        return cart

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, dto: AddItemDTO) -> Cart:
        """Add a product or custom product to the client's active cart.

        An existing line for the same ``(item_type, item_id)`` is merged: the
        quantities are summed and the line is re-priced from the current
        catalog price.

        Raises:
            QuantityOutOfRange: quantity (or merged quantity) outside [1, 99].
            ClientNotFound: the client does not exist.
            CatalogItemNotFound: unknown, inactive or deleted item.
            InvalidItemPrice: the resolved price is not positive.
        """
        _check_quantity(dto.quantity)
        self._require_client(dto.client_id)

        priced = self._catalog_repo.get_priced_item(dto.item_type, str(dto.item_id))
        if priced is None:
            raise CatalogItemNotFound(
                f"{dto.item_type} {dto.item_id} not found or not available."
            )
        if priced.unit_price <= 0:
            raise InvalidItemPrice.for_field(
                "itemId", "Item price must be greater than zero."
            )

        cart = self._lock_active_cart(dto.client_id)
        log = logger.bind(
            cart_id=str(cart.id),
            item_type=dto.item_type,
            item_id=str(dto.item_id),
        )

        line = self._cart_repo.get_item(cart, str(dto.item_id), dto.item_type)
        if line is not None:
            merged = line.quantity + dto.quantity
            if merged > MAX_ITEM_QUANTITY:
                raise QuantityOutOfRange.for_field(
                    "quantity",
                    f"Cart already holds {line.quantity}; the total cannot "
                    f"exceed {MAX_ITEM_QUANTITY}.",
                )
            line.quantity = merged
            line.unit_price = priced.unit_price
            line.item_name = priced.name
            self._cart_repo.save_item(line)
            log.info("cart.item_merged", quantity=merged)
        else:
            self._cart_repo.add_item(
                cart,
                {
                    "item_type": priced.item_type,
                    "item_id": priced.item_id,
                    "item_name": priced.name,
                    "quantity": dto.quantity,
                    "unit_price": priced.unit_price,
                },
            )
            log.info("cart.item_added", quantity=dto.quantity)

        return self.recalculate(cart)

    @transaction.atomic
    def update_item_quantity(self, dto: UpdateQuantityDTO) -> Cart:
        """Set the quantity of an existing line; price stays the line snapshot.

        Raises:
            QuantityOutOfRange: quantity outside [1, 99].
            CartItemNotFound: the item is not in the client's active cart.
        """
        _check_quantity(dto.quantity)
        cart = self._lock_active_cart(dto.client_id, create=False)

        line = self._cart_repo.get_item(cart, str(dto.item_id))
        if line is None:
            raise CartItemNotFound(f"Item {dto.item_id} is not in the cart.")

        line.quantity = dto.quantity
        self._cart_repo.save_item(line)
        logger.info(
            "cart.item_quantity_updated",
            cart_id=str(cart.id),
            item_id=str(dto.item_id),
            quantity=dto.quantity,
        )
        return self.recalculate(cart)

    @transaction.atomic
    def remove_item(self, dto: RemoveItemDTO) -> Cart:
        """Drop a line.  An empty resulting cart is valid.

        Raises:
            CartItemNotFound: the item is not in the cart (cart untouched).
        """
        cart = self._lock_active_cart(dto.client_id, create=False)

        line = self._cart_repo.get_item(cart, str(dto.item_id))
        if line is None:
            raise CartItemNotFound(f"Item {dto.item_id} is not in the cart.")

        self._cart_repo.delete_item(line)
        logger.info("cart.item_removed", cart_id=str(cart.id), item_id=str(dto.item_id))
        return self.recalculate(cart)

    def recalculate(self, cart: Cart) -> Cart:
        """Recompute totals from the persisted lines and return a fresh cart."""
        cart.recalculate_totals(self._cart_repo.list_items(cart))
        self._cart_repo.save(cart)
        return self._cart_repo.get_by_id(str(cart.id)) or cart

    # ------------------------------------------------------------------
    # Purchase lifecycle
    # ------------------------------------------------------------------

    @transaction.atomic
    def clear_after_purchase(self, cart_id: UUID | str, client_id: UUID | str) -> Cart:
        """Archive a purchased cart and return the client's ACTIVE cart.

        Idempotent: archiving an already COMPLETED cart only makes sure an
        ACTIVE cart exists.

        Raises:
            CartNotFound: unknown cart, or the cart belongs to another client.
        """
        cart = self._cart_repo.get_for_update(str(cart_id))
        if cart is None or str(cart.client_id) != str(client_id):
            logger.warning(
                "cart.clear_rejected", cart_id=str(cart_id), client_id=str(client_id)
            )
            raise CartNotFound(f"Cart {cart_id} not found for this client.")

        if cart.status != CartStatus.COMPLETED:
            cart.status = CartStatus.COMPLETED
            cart.completed_at = timezone.now()
            self._cart_repo.save(cart)
            logger.info("cart.archived", cart_id=str(cart.id), client_id=str(client_id))
        else:
            logger.info("cart.already_archived", cart_id=str(cart.id))

        return self.get_active_cart(client_id)

    @transaction.atomic
    def cleanup_duplicate_carts(self) -> CleanupReportDTO:
        """Archive every ACTIVE cart but the newest one of each client."""
        archived_ids: List[UUID] = []
        client_ids = self._cart_repo.clients_with_duplicate_active_carts()
        now = timezone.now()

        for client_id in client_ids:
            _keep, *extra = self._cart_repo.list_active_for_client(client_id)
            for cart in extra:
                cart.status = CartStatus.COMPLETED
                cart.completed_at = now
                self._cart_repo.save(cart)
                archived_ids.append(cart.id)

        report = CleanupReportDTO(
            clients_affected=len(client_ids),
            carts_archived=len(archived_ids),
            archived_cart_ids=archived_ids,
        )
        logger.info(
            "cart.duplicates_cleaned",
            clients_affected=report.clients_affected,
            carts_archived=report.carts_archived,
        )
        return report

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self, cart_id: UUID | str) -> Cart:
        cart = self._cart_repo.get_by_id(str(cart_id))
        if cart is None:
            raise CartNotFound(f"Cart {cart_id} not found.")
        return cart

    def find_active_cart(self, client_id: UUID | str) -> Optional[Cart]:
        """ACTIVE cart without creating one."""
        return self._cart_repo.get_active_for_client(str(client_id))
