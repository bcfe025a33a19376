"""Checkout service layer (Use Cases).

``confirm`` turns a complete wizard submission into a Sale:

(a) resolve the client's ACTIVE cart (an empty cart is rejected);
(b) upload the payment proof, if any, and create the Sale;
(c) confirm the pending discount and mark the client's code as used;
(d) archive the cart and open a new ACTIVE one.

(a) and (b) either succeed or leave nothing behind.  (c) and (d) run as
independent units of work once the Sale exists: a failure there is logged,
recorded on the Sale (``discount_status`` / ``cart_archived``) and handed to
the ``checkout.reconcile_sale`` task.  The buyer still gets the order.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional
from uuid import UUID

import structlog
from django.db import DatabaseError, transaction

from modules.checkout.constants import DiscountStatus, SaleStatus
from modules.checkout.exceptions import (
    EmptyCart,
    InvalidStatusTransition,
    PaymentProofRequired,
    SaleNotFound,
)
from modules.core.exceptions import ConflictError

if TYPE_CHECKING:
    from modules.carts.models import Cart
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.carts.services import CartService
    from modules.checkout.dtos import CreateSaleDTO
    from modules.checkout.models import Sale
    from modules.checkout.repositories.interfaces import ISaleRepository
    from modules.checkout.storage import PaymentProofStorage
    from modules.discounts.services import DiscountService

logger = structlog.get_logger(__name__)


def _schedule_reconciliation(sale_id: str) -> None:
    from modules.checkout.tasks import reconcile_sale

    transaction.on_commit(lambda: reconcile_sale.delay(sale_id), robust=True)


class CheckoutService:
    """Application service for checkout use-cases.

    Receives collaborators via constructor injection (DIP).
    ``reconcile_scheduler`` is called with the sale id whenever step (c) or
    (d) is left unfinished.
    """

    def __init__(
        self,
        sale_repository: ISaleRepository,
        cart_repository: ICartRepository,
        cart_service: CartService,
        discount_service: DiscountService,
        proof_storage: PaymentProofStorage,
        reconcile_scheduler: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._sale_repo = sale_repository
        self._cart_repo = cart_repository
        self._cart_service = cart_service
        self._discount_service = discount_service
        self._proof_storage = proof_storage
        self._schedule = reconcile_scheduler or _schedule_reconciliation

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def confirm(self, dto: CreateSaleDTO) -> Sale:
        """Create the Sale and run the post-order steps.

        Raises:
            PaymentProofRequired: non-card payment without a proof file.
            ClientNotFound: unknown client.
            EmptyCart: the ACTIVE cart has no items.
            PaymentProofUploadFailed: object storage failed (nothing persisted).
            ConflictError: the cart changed or was already checked out.
        """
        log = logger.bind(client_id=str(dto.client_id), payment_type=str(dto.payment_type))
        log.info("checkout.started")

        if not dto.is_card_payment and dto.payment_proof is None:
            raise PaymentProofRequired.for_field(
                "paymentProof", "A payment proof is required for this payment type."
            )

        # (a)
        cart = self._cart_service.get_active_cart(dto.client_id)
        if not self._cart_repo.list_items(cart):
            raise EmptyCart.for_field("cart", "The cart is empty.")

        # (b)
        proof_url = ""
        if not dto.is_card_payment:
            proof_url = self._proof_storage.upload(dto.payment_proof)
        try:
            sale = self._create_sale(dto, cart.id, proof_url)
        except Exception:
            if proof_url:
                log.warning("checkout.sale_rejected_after_upload", proof_url=proof_url)
                self._proof_storage.discard(proof_url)
            raise
        log = log.bind(sale_id=str(sale.id))

        # (c) and (d)
        self._run_post_order_steps(sale)
        if sale.needs_reconciliation:
            log.warning(
                "checkout.reconciliation_scheduled",
                discount_status=sale.discount_status,
                cart_archived=sale.cart_archived,
            )
            self._schedule(str(sale.id))

        log.info("checkout.completed", total_amount=str(sale.total_amount))
        return sale

    @transaction.atomic
    def _create_sale(self, dto: CreateSaleDTO, cart_id: UUID, proof_url: str) -> Sale:
        cart: Optional[Cart] = self._cart_repo.get_for_update(str(cart_id))
        if cart is None or not cart.is_active:
            raise ConflictError("The cart changed during checkout, please retry.")
        if self._sale_repo.exists_for_cart(str(cart.id)):
            raise ConflictError("An order was already placed for this cart.")

        items = self._cart_repo.list_items(cart)
        if not items:
            raise EmptyCart.for_field("cart", "The cart is empty.")
        cart.recalculate_totals(items)

        pending = cart.pending_snapshot
        discount_amount = pending.amount if pending is not None else Decimal("0.00")
        shipping = dto.shipping

        return self._sale_repo.create(
            {
                "client_id": dto.client_id,
                "cart_id": cart.id,
                "payment_type": str(dto.payment_type),
                "payment_proof_url": proof_url,
                "status": SaleStatus.PAID if dto.is_card_payment else SaleStatus.PENDING,
                "receiver_name": shipping.receiver_name,
                "receiver_phone": shipping.receiver_phone,
                "delivery_address": shipping.delivery_address,
                "delivery_point": shipping.delivery_point,
                "delivery_date": shipping.delivery_date,
                "subtotal_amount": cart.subtotal,
                "discount_amount": discount_amount,
                "total_amount": max(Decimal("0.00"), cart.subtotal - discount_amount),
                "discount_code_id": pending.code_id if pending is not None else "",
                "discount_status": (
                    DiscountStatus.PENDING if pending is not None else DiscountStatus.NONE
                ),
                "cart_archived": False,
            }
        )

    def reconcile(self, order_id: UUID | str) -> Sale:
        """Finish whatever post-order step is still outstanding for a Sale.

        Safe to call any number of times.

        Raises:
            SaleNotFound: unknown order.
        """
        sale = self._sale_repo.get_by_id(str(order_id))
        if sale is None:
            raise SaleNotFound(f"Order {order_id} not found.")
        if not sale.needs_reconciliation:
            return sale

        logger.info(
            "checkout.reconcile_started",
            sale_id=str(sale.id),
            discount_status=sale.discount_status,
            cart_archived=sale.cart_archived,
        )
        self._run_post_order_steps(sale)
        if not sale.needs_reconciliation:
            logger.info("checkout.reconciled", sale_id=str(sale.id))
        return sale

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_payment_status(self, order_id: UUID | str, new_status: str) -> Sale:
        """Move a sale from PENDING to PAID once its proof is checked.

        Setting the current status again is a no-op.

        Raises:
            SaleNotFound: unknown order.
            InvalidStatusTransition: the move goes backwards.
        """
        sale = self._lock_sale(order_id)
        if sale.status == new_status:
            return sale
        if not sale.can_change_payment_status_to(new_status):
            logger.warning(
                "sale.invalid_payment_transition",
                sale_id=str(sale.id),
                current_status=sale.status,
                new_status=new_status,
            )
            raise InvalidStatusTransition(
                f"Cannot change payment status from {sale.status} to {new_status}."
            )

        old_status = sale.status
        sale.status = new_status
        self._sale_repo.save(sale)
        logger.info(
            "sale.payment_status_updated",
            sale_id=str(sale.id),
            old_status=old_status,
            new_status=new_status,
        )
        return sale

    @transaction.atomic
    def update_tracking_status(self, order_id: UUID | str, new_status: str) -> Sale:
        """Advance delivery tracking (SCHEDULED -> IN_PROGRESS -> DELIVERED).

        Raises:
            SaleNotFound: unknown order.
            InvalidStatusTransition: the move goes backwards.
        """
        sale = self._lock_sale(order_id)
        if sale.tracking_status == new_status:
            return sale
        if not sale.can_change_tracking_status_to(new_status):
            logger.warning(
                "sale.invalid_tracking_transition",
                sale_id=str(sale.id),
                current_status=sale.tracking_status,
                new_status=new_status,
            )
            raise InvalidStatusTransition(
                f"Cannot change tracking status from {sale.tracking_status} "
                f"to {new_status}."
            )

        old_status = sale.tracking_status
        sale.tracking_status = new_status
        self._sale_repo.save(sale)
        logger.info(
            "sale.tracking_status_updated",
            sale_id=str(sale.id),
            old_status=old_status,
            new_status=new_status,
        )
        return sale

    def _lock_sale(self, order_id: UUID | str) -> Sale:
        sale = self._sale_repo.get_for_update(str(order_id))
        if sale is None:
            raise SaleNotFound(f"Order {order_id} not found.")
        return sale

    # ------------------------------------------------------------------
    # Post-order steps
    # ------------------------------------------------------------------

    def _run_post_order_steps(self, sale: Sale) -> None:
        self._confirm_discount_step(sale)
        self._archive_cart_step(sale)

    def _confirm_discount_step(self, sale: Sale) -> None:
        if sale.discount_status != DiscountStatus.PENDING:
            return
        try:
            self._discount_service.confirm_discount(sale.cart_id, sale.id)
            self._discount_service.mark_code_used(
                sale.client_id, sale.discount_code_id, sale.id
            )
        except Exception as exc:
            logger.exception(
                "checkout.discount_confirm_failed",
                sale_id=str(sale.id),
                cart_id=str(sale.cart_id),
                code_id=sale.discount_code_id,
            )
            self._note_failure(sale, f"discount: {exc}")
            return
        self._sale_repo.update_markers(sale, discount_status=DiscountStatus.CONFIRMED)

    def _archive_cart_step(self, sale: Sale) -> None:
        if sale.cart_archived:
            return
        try:
            self._cart_service.clear_after_purchase(sale.cart_id, sale.client_id)
        except Exception as exc:
            logger.exception(
                "checkout.cart_archive_failed",
                sale_id=str(sale.id),
                cart_id=str(sale.cart_id),
            )
            self._note_failure(sale, f"cart: {exc}")
            return
        self._sale_repo.update_markers(sale, cart_archived=True)

    def _note_failure(self, sale: Sale, error: str) -> None:
        try:
            self._sale_repo.record_reconcile_error(sale, error)
        except DatabaseError:
            logger.exception("checkout.reconcile_error_not_recorded", sale_id=str(sale.id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_sale(self, order_id: UUID | str) -> Sale:
        sale = self._sale_repo.get_by_id(str(order_id))
        if sale is None:
            raise SaleNotFound(f"Order {order_id} not found.")
        return sale

    def list_sales(self, filters: Optional[Dict[str, Any]] = None):
        """Sales as a QuerySet, optionally filtered with ORM look-ups."""
        return self._sale_repo.list(filters)


def build_checkout_service(**overrides: Any) -> CheckoutService:
    """CheckoutService wired with the Django repositories and Cloudinary."""
    from modules.carts.repositories.django_repository import CartDjangoRepository
    from modules.carts.services import CartService
    from modules.catalog.repositories.django_repository import CatalogDjangoRepository
    from modules.checkout.repositories.django_repository import SaleDjangoRepository
    from modules.checkout.storage import CloudinaryPaymentProofStorage
    from modules.clients.repositories.django_repository import ClientDjangoRepository
    from modules.discounts.services import DiscountService

    cart_repository = CartDjangoRepository()
    client_repository = ClientDjangoRepository()
    sale_repository = SaleDjangoRepository()
    cart_service = CartService(
        cart_repository=cart_repository,
        client_repository=client_repository,
        catalog_repository=CatalogDjangoRepository(),
    )
    collaborators: Dict[str, Any] = {
        "sale_repository": sale_repository,
        "cart_repository": cart_repository,
        "cart_service": cart_service,
        "discount_service": DiscountService(
            cart_service=cart_service,
            cart_repository=cart_repository,
            client_repository=client_repository,
            sale_repository=sale_repository,
        ),
        "proof_storage": CloudinaryPaymentProofStorage(),
    }
    collaborators.update(overrides)
    return CheckoutService(**collaborators)
