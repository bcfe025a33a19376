"""Discount service layer (Use Cases).

Two-phase lifecycle of a promotional code on a cart:

1. **Pending**: the code is validated against the cart owner's grants and
   stored on the cart as ``pending_discount``.  It never changes the cart
   total and does not consume the grant.  Its amount follows the subtotal.
2. **Confirmed**: once a Sale referencing the cart exists, the pending
   discount becomes ``applied_discount`` (stamped with the order id) and the
   client's grant is flipped to USED for that order.

The two confirmation calls are separate units of work; the checkout
reconciliation task retries whichever one did not complete.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.carts.dtos import DiscountSnapshot, compute_discount_amount
from modules.carts.exceptions import CartNotActive, CartNotFound
from modules.checkout.exceptions import SaleNotFound
from modules.clients.constants import GrantStatus
from modules.clients.exceptions import GrantAlreadyUsed, GrantNotFound
from modules.discounts.exceptions import (
    DiscountAlreadyApplied,
    EmptyCartDiscount,
    InvalidDiscountCode,
    NoPendingDiscount,
    SaleCartMismatch,
)

if TYPE_CHECKING:
    from modules.carts.models import Cart
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.carts.services import CartService
    from modules.checkout.repositories.interfaces import ISaleRepository
    from modules.clients.models import DiscountCodeGrant
    from modules.clients.repositories.interfaces import IClientRepository

logger = structlog.get_logger(__name__)


class DiscountService:
    """Application service for promotional-code use-cases."""

    def __init__(
        self,
        cart_service: CartService,
        cart_repository: ICartRepository,
        client_repository: IClientRepository,
        sale_repository: ISaleRepository,
    ) -> None:
        self._cart_service = cart_service
        self._cart_repo = cart_repository
        self._client_repo = client_repository
        self._sale_repo = sale_repository

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_code(self, client_id: UUID | str, code: str) -> DiscountCodeGrant:
        """Return the client's usable grant for ``code``.

        An ACTIVE grant past its expiry date is flipped to EXPIRED (and that
        change is kept) before the code is rejected.

        Raises:
            InvalidDiscountCode: unknown, used, expired or unparsable code.
        """
        code = (code or "").strip()
        if not code:
            raise InvalidDiscountCode.for_field("code", "Discount code is required.")

        grant = self._client_repo.find_grant_by_code(str(client_id), code)
        if grant is None:
            raise InvalidDiscountCode.for_field("code", "Discount code not found.")

        if grant.status == GrantStatus.ACTIVE and grant.is_expired:
            self._client_repo.mark_grant_expired(grant)

        if grant.status == GrantStatus.USED:
            raise InvalidDiscountCode.for_field(
                "code", "Discount code has already been used."
            )
        if grant.status == GrantStatus.EXPIRED:
            raise InvalidDiscountCode.for_field("code", "Discount code has expired.")

        percentage = grant.percentage
        if percentage is None or not 0 < percentage <= 100:
            raise InvalidDiscountCode.for_field(
                "code", "Discount code has an invalid percentage."
            )
        return grant

    # ------------------------------------------------------------------
    # Pending phase
    # ------------------------------------------------------------------

    def apply_pending_discount(self, cart_id: UUID | str, code: str) -> Cart:
        """Attach (or replace) the pending discount of an ACTIVE cart.

        Raises:
            CartNotFound: unknown cart.
            InvalidDiscountCode: the code is not usable by the cart owner.
            CartNotActive / DiscountAlreadyApplied: cart state forbids it.
            EmptyCartDiscount: the cart has no items.
        """
        cart = self._cart_repo.get_by_id(str(cart_id))
        if cart is None:
            raise CartNotFound(f"Cart {cart_id} not found.")

        # Runs outside the cart transaction so an expiry flip is kept.
        grant = self.validate_code(cart.client_id, code)

        with transaction.atomic():
            cart = self._lock_cart(cart_id)
            if not cart.is_active:
                raise CartNotActive()
            if cart.applied_discount:
                raise DiscountAlreadyApplied()
            if self._cart_repo.has_order(cart):
                raise CartNotActive("An order was already placed for this cart.")
            if not self._cart_repo.list_items(cart):
                raise EmptyCartDiscount.for_field(
                    "cartId", "A discount cannot be applied to an empty cart."
                )

            snapshot = DiscountSnapshot(
                code=grant.code,
                code_id=grant.code_id,
                name=grant.name,
                discount=grant.discount,
                percentage=grant.percentage,
                amount=compute_discount_amount(cart.subtotal, grant.percentage),
                color=grant.color,
                text_color=grant.text_color,
                applied_at=timezone.now(),
            )
            cart.pending_discount = snapshot.to_storage()
            cart = self._cart_service.recalculate(cart)

        logger.info(
            "discount.pending_applied",
            cart_id=str(cart.id),
            code_id=grant.code_id,
            amount=str(cart.pending_snapshot.amount),
        )
        return cart

    @transaction.atomic
    def remove_pending_discount(self, cart_id: UUID | str) -> Cart:
        """Clear the pending discount; a cart without one is returned as is."""
        cart = self._lock_cart(cart_id)
        if not cart.pending_discount:
            return self._cart_service.get_cart(cart.id)
        if self._cart_repo.has_order(cart):
            # The order still has to confirm this discount.
            raise CartNotActive("An order was already placed for this cart.")

        cart.pending_discount = None
        cart = self._cart_service.recalculate(cart)
        logger.info("discount.pending_removed", cart_id=str(cart.id))
        return cart

    # ------------------------------------------------------------------
    # Confirmation phase
    # ------------------------------------------------------------------

    @transaction.atomic
    def confirm_discount(self, cart_id: UUID | str, order_id: UUID | str) -> Cart:
        """Move the pending discount to ``applied_discount`` for ``order_id``.

        Idempotent when the discount is already applied for the same order.

        Raises:
            CartNotFound / SaleNotFound: unknown cart or order.
            SaleCartMismatch: the order was not created from this cart.
            DiscountAlreadyApplied: applied for a different order.
            NoPendingDiscount: nothing to confirm.
        """
        cart = self._lock_cart(cart_id)

        sale = self._sale_repo.get_by_id(str(order_id))
        if sale is None:
            raise SaleNotFound(f"Order {order_id} not found.")
        if str(sale.cart_id) != str(cart.id):
            raise SaleCartMismatch()

        applied = cart.applied_snapshot
        if applied is not None:
            if str(applied.order_id) == str(sale.id):
                logger.info("discount.confirm_idempotent", cart_id=str(cart.id))
                return self._cart_service.get_cart(cart.id)
            raise DiscountAlreadyApplied()

        pending = cart.pending_snapshot
        if pending is None:
            raise NoPendingDiscount()

        cart.applied_discount = pending.confirmed(sale.id, timezone.now()).to_storage()
        cart.pending_discount = None
        cart = self._cart_service.recalculate(cart)

        logger.info(
            "discount.confirmed",
            cart_id=str(cart.id),
            order_id=str(sale.id),
            amount=str(cart.applied_snapshot.amount),
        )
        return cart

    @transaction.atomic
    def mark_code_used(
        self, client_id: UUID | str, code_id: str, order_id: UUID | str
    ) -> DiscountCodeGrant:
        """Flip the client's grant to USED for ``order_id``.

        Idempotent for the same order.

        Raises:
            GrantNotFound: the client has no grant with ``code_id``.
            SaleNotFound: unknown order, or the order belongs to another client.
            GrantAlreadyUsed: the grant was consumed by a different order.
        """
        grant = self._client_repo.get_grant(str(client_id), code_id)
        if grant is None:
            raise GrantNotFound(f"Discount code {code_id} not found for this client.")

        sale = self._sale_repo.get_by_id(str(order_id))
        if sale is None or str(sale.client_id) != str(client_id):
            raise SaleNotFound(f"Order {order_id} not found for this client.")

        if not self._client_repo.mark_grant_used(str(client_id), code_id, sale.id):
            grant = self._client_repo.get_grant(str(client_id), code_id)
            if grant is not None and str(grant.used_in_order_id) == str(sale.id):
                logger.info("discount.code_used_idempotent", code_id=code_id)
                return grant
            logger.warning(
                "discount.code_already_used",
                client_id=str(client_id),
                code_id=code_id,
                order_id=str(order_id),
            )
            raise GrantAlreadyUsed()

        logger.info(
            "discount.code_marked_used",
            client_id=str(client_id),
            code_id=code_id,
            order_id=str(sale.id),
        )
        return self._client_repo.get_grant(str(client_id), code_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_cart(self, cart_id: UUID | str) -> Cart:
        cart = self._cart_repo.get_for_update(str(cart_id))
        if cart is None:
            raise CartNotFound(f"Cart {cart_id} not found.")
        return cart
