"""Unit tests for CheckoutService.

Covers:
- confirm: card / transfer flows, discount capture, empty cart, proof upload
- confirm: partial failure after the sale exists (reconciliation scheduled)
- reconcile: finishing outstanding post-order steps
- payment and tracking status transitions
- reconcile_sale Celery task
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.carts.constants import CartStatus
from modules.carts.dtos import AddItemDTO
from modules.carts.models import Cart
from modules.catalog.constants import ItemType
from modules.checkout.constants import (
    DiscountStatus,
    PaymentType,
    SaleStatus,
    TrackingStatus,
)
from modules.checkout.dtos import CreateSaleDTO, ShippingDetailsDTO
from modules.checkout.exceptions import (
    EmptyCart,
    InvalidStatusTransition,
    PaymentProofRequired,
    PaymentProofUploadFailed,
    SaleNotFound,
)
from modules.checkout.models import Sale
from modules.clients.constants import GrantStatus
from modules.core.exceptions import ConflictError
from modules.discounts.services import DiscountService

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def shipping():
    return ShippingDetailsDTO(
        receiver_name="María López García",
        receiver_phone="777788889",
        delivery_address="Colonia Escalón, calle principal 123",
        delivery_point="Frente al parque, portón negro",
        delivery_date=timezone.localdate() + timedelta(days=2),
    )


@pytest.fixture()
def filled_cart(cart_service, shop_client, product):
    return cart_service.add_item(
        AddItemDTO(
            client_id=shop_client.id,
            item_type=ItemType.PRODUCT,
            item_id=product.id,
            quantity=5,
        )
    )


@pytest.fixture()
def discounted_cart(discount_service, filled_cart, grant):
    return discount_service.apply_pending_discount(filled_cart.id, "RULETA10")


def _submission(client, shipping, payment_type=PaymentType.TRANSFER, proof="proof.png"):
    return CreateSaleDTO(
        client_id=client.id,
        shipping=shipping,
        payment_type=payment_type,
        payment_proof=proof,
    )


# ---------------------------------------------------------------------------
# confirm
# ---------------------------------------------------------------------------


class TestConfirm:
    def test_card_payment_creates_paid_sale_without_upload(
        self, checkout_service, proof_storage, shop_client, shipping, filled_cart
    ):
        sale = checkout_service.confirm(
            _submission(shop_client, shipping, PaymentType.CREDIT, proof=None)
        )

        assert sale.status == SaleStatus.PAID
        assert sale.payment_proof_url == ""
        assert sale.total_amount == Decimal("50.00")
        proof_storage.upload.assert_not_called()

    def test_transfer_uploads_proof_and_stays_pending(
        self, checkout_service, proof_storage, shop_client, shipping, filled_cart
    ):
        sale = checkout_service.confirm(_submission(shop_client, shipping))

        proof_storage.upload.assert_called_once_with("proof.png")
        assert sale.status == SaleStatus.PENDING
        assert sale.payment_proof_url.startswith("https://")
        assert sale.receiver_phone == "777788889"

    def test_successful_checkout_archives_cart(
        self,
        checkout_service,
        reconcile_scheduler,
        cart_service,
        shop_client,
        shipping,
        filled_cart,
    ):
        sale = checkout_service.confirm(_submission(shop_client, shipping))

        filled_cart.refresh_from_db()
        assert filled_cart.status == CartStatus.COMPLETED
        assert sale.cart_archived is True
        assert sale.discount_status == DiscountStatus.NONE
        active = cart_service.find_active_cart(shop_client.id)
        assert active is not None
        assert active.id != filled_cart.id
        reconcile_scheduler.assert_not_called()

    def test_pending_discount_is_confirmed_and_code_used(
        self, checkout_service, shop_client, shipping, discounted_cart, grant
    ):
        sale = checkout_service.confirm(_submission(shop_client, shipping))

        assert sale.subtotal_amount == Decimal("50.00")
        assert sale.discount_amount == Decimal("5.00")
        assert sale.total_amount == Decimal("45.00")
        assert sale.discount_status == DiscountStatus.CONFIRMED

        cart = Cart.objects.get(id=discounted_cart.id)
        assert cart.pending_discount is None
        assert cart.applied_snapshot.order_id == sale.id
        assert cart.total == Decimal("45.00")
        assert cart.status == CartStatus.COMPLETED

        grant.refresh_from_db()
        assert grant.status == GrantStatus.USED
        assert grant.used_in_order_id == sale.id

    def test_empty_cart_rejected(self, checkout_service, shop_client, shipping):
        with pytest.raises(EmptyCart):
            checkout_service.confirm(_submission(shop_client, shipping))
        assert not Sale.objects.exists()

    def test_proof_required_for_transfer(
        self, checkout_service, shop_client, shipping, filled_cart
    ):
        with pytest.raises(PaymentProofRequired):
            checkout_service.confirm(_submission(shop_client, shipping, proof=None))

    def test_upload_failure_persists_nothing(
        self, checkout_service, proof_storage, shop_client, shipping, filled_cart
    ):
        proof_storage.upload.side_effect = PaymentProofUploadFailed()

        with pytest.raises(PaymentProofUploadFailed):
            checkout_service.confirm(_submission(shop_client, shipping))

        assert not Sale.objects.exists()
        filled_cart.refresh_from_db()
        assert filled_cart.status == CartStatus.ACTIVE
        assert filled_cart.items.count() == 1

    def test_ordered_cart_is_not_checked_out_twice(
        self, checkout_service, proof_storage, shop_client, shipping, filled_cart
    ):
        with patch.object(checkout_service, "_run_post_order_steps"):
            checkout_service.confirm(_submission(shop_client, shipping))

            with pytest.raises(EmptyCart):
                checkout_service.confirm(_submission(shop_client, shipping))

        assert Sale.objects.count() == 1
        assert proof_storage.upload.call_count == 1
        filled_cart.refresh_from_db()
        assert filled_cart.status == CartStatus.COMPLETED

    def test_rejected_sale_discards_uploaded_proof(
        self, checkout_service, cart_service, proof_storage, shop_client, shipping, filled_cart
    ):
        with patch.object(checkout_service, "_run_post_order_steps"):
            checkout_service.confirm(_submission(shop_client, shipping))
        proof_storage.reset_mock()

        # The cart gets ordered between the lookup and the sale insert.
        with patch.object(cart_service, "get_active_cart", return_value=filled_cart):
            with pytest.raises(ConflictError):
                checkout_service.confirm(_submission(shop_client, shipping))

        proof_storage.upload.assert_called_once()
        proof_storage.discard.assert_called_once_with(proof_storage.upload.return_value)
        assert Sale.objects.count() == 1

    def test_card_sale_rejection_discards_nothing(
        self, checkout_service, cart_service, proof_storage, shop_client, shipping, filled_cart
    ):
        with patch.object(checkout_service, "_run_post_order_steps"):
            checkout_service.confirm(
                _submission(shop_client, shipping, PaymentType.CREDIT, proof=None)
            )

        with patch.object(cart_service, "get_active_cart", return_value=filled_cart):
            with pytest.raises(ConflictError):
                checkout_service.confirm(
                    _submission(shop_client, shipping, PaymentType.CREDIT, proof=None)
                )

        proof_storage.discard.assert_not_called()


class TestPartialFailure:
    def test_discount_failure_keeps_sale_and_schedules_reconciliation(
        self,
        checkout_service,
        reconcile_scheduler,
        shop_client,
        shipping,
        discounted_cart,
        grant,
    ):
        with patch.object(
            DiscountService, "mark_code_used", side_effect=RuntimeError("store down")
        ):
            sale = checkout_service.confirm(_submission(shop_client, shipping))

        sale.refresh_from_db()
        assert sale.discount_status == DiscountStatus.PENDING
        assert sale.cart_archived is True
        assert sale.reconcile_attempts == 1
        assert "store down" in sale.last_reconcile_error
        reconcile_scheduler.assert_called_once_with(str(sale.id))

        grant.refresh_from_db()
        assert grant.status == GrantStatus.ACTIVE

    def test_archive_failure_keeps_sale(
        self,
        checkout_service,
        cart_service,
        reconcile_scheduler,
        shop_client,
        shipping,
        filled_cart,
    ):
        with patch.object(
            cart_service, "clear_after_purchase", side_effect=RuntimeError("timeout")
        ):
            sale = checkout_service.confirm(_submission(shop_client, shipping))

        assert Sale.objects.filter(id=sale.id).exists()
        assert sale.cart_archived is False
        reconcile_scheduler.assert_called_once_with(str(sale.id))

    def test_items_added_after_archive_failure_go_to_a_fresh_cart(
        self, checkout_service, cart_service, shop_client, shipping, filled_cart, other_product
    ):
        with patch.object(
            cart_service, "clear_after_purchase", side_effect=RuntimeError("timeout")
        ):
            sale = checkout_service.confirm(_submission(shop_client, shipping))

        cart = cart_service.add_item(
            AddItemDTO(
                client_id=shop_client.id,
                item_type=ItemType.PRODUCT,
                item_id=other_product.id,
                quantity=3,
            )
        )

        assert cart.id != sale.cart_id
        assert cart.subtotal == Decimal("54.00")
        ordered = Cart.objects.get(id=sale.cart_id)
        assert ordered.status == CartStatus.COMPLETED
        assert ordered.items.count() == 1
        assert ordered.subtotal == sale.subtotal_amount == Decimal("50.00")

        reconciled = checkout_service.reconcile(sale.id)

        assert reconciled.cart_archived is True
        assert not reconciled.needs_reconciliation
        active = cart_service.find_active_cart(shop_client.id)
        assert active.id == cart.id
        assert [line.item_id for line in active.items.all()] == [other_product.id]

    def test_ordered_cart_still_active_accepts_a_new_checkout(
        self, checkout_service, cart_service, shop_client, shipping, filled_cart, other_product
    ):
        with patch.object(
            cart_service, "clear_after_purchase", side_effect=RuntimeError("timeout")
        ):
            first = checkout_service.confirm(_submission(shop_client, shipping))
        cart_service.add_item(
            AddItemDTO(
                client_id=shop_client.id,
                item_type=ItemType.PRODUCT,
                item_id=other_product.id,
                quantity=1,
            )
        )

        second = checkout_service.confirm(_submission(shop_client, shipping))

        assert second.cart_id != first.cart_id
        assert second.subtotal_amount == Decimal("18.00")

    def test_reconcile_finishes_outstanding_steps(
        self, checkout_service, shop_client, shipping, discounted_cart, grant
    ):
        with patch.object(
            DiscountService, "mark_code_used", side_effect=RuntimeError("store down")
        ):
            sale = checkout_service.confirm(_submission(shop_client, shipping))

        reconciled = checkout_service.reconcile(sale.id)

        assert reconciled.discount_status == DiscountStatus.CONFIRMED
        assert not reconciled.needs_reconciliation
        grant.refresh_from_db()
        assert grant.status == GrantStatus.USED
        assert grant.used_in_order_id == sale.id

    def test_reconcile_is_noop_when_complete(
        self, checkout_service, shop_client, shipping, filled_cart
    ):
        sale = checkout_service.confirm(_submission(shop_client, shipping))

        with patch.object(checkout_service, "_run_post_order_steps") as steps:
            checkout_service.reconcile(sale.id)

        steps.assert_not_called()

    def test_reconcile_unknown_order(self, checkout_service):
        with pytest.raises(SaleNotFound):
            checkout_service.reconcile(uuid4())


class TestQueries:
    def test_get_sale(self, checkout_service, shop_client, shipping, filled_cart):
        sale = checkout_service.confirm(_submission(shop_client, shipping))
        assert checkout_service.get_sale(sale.id).id == sale.id

    def test_get_unknown_sale(self, checkout_service):
        with pytest.raises(SaleNotFound):
            checkout_service.get_sale("not-a-uuid")

    def test_list_sales_filters(self, checkout_service, shop_client, shipping, filled_cart):
        checkout_service.confirm(_submission(shop_client, shipping))

        assert checkout_service.list_sales({"client_id": shop_client.id}).count() == 1
        assert checkout_service.list_sales({"status": SaleStatus.PAID}).count() == 0


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


class TestStatusTransitions:
    @pytest.fixture()
    def sale(self, checkout_service, shop_client, shipping, filled_cart):
        return checkout_service.confirm(_submission(shop_client, shipping))

    def test_transfer_sale_can_be_marked_paid(self, checkout_service, sale):
        updated = checkout_service.update_payment_status(sale.id, SaleStatus.PAID)

        assert updated.status == SaleStatus.PAID
        sale.refresh_from_db()
        assert sale.status == SaleStatus.PAID

    def test_paid_sale_cannot_go_back_to_pending(self, checkout_service, sale):
        checkout_service.update_payment_status(sale.id, SaleStatus.PAID)

        with pytest.raises(InvalidStatusTransition):
            checkout_service.update_payment_status(sale.id, SaleStatus.PENDING)

        sale.refresh_from_db()
        assert sale.status == SaleStatus.PAID

    def test_same_payment_status_is_a_noop(self, checkout_service, sale):
        updated = checkout_service.update_payment_status(sale.id, SaleStatus.PENDING)

        assert updated.status == SaleStatus.PENDING

    def test_tracking_moves_forward(self, checkout_service, sale):
        assert sale.tracking_status == TrackingStatus.SCHEDULED

        checkout_service.update_tracking_status(sale.id, TrackingStatus.IN_PROGRESS)
        updated = checkout_service.update_tracking_status(
            sale.id, TrackingStatus.DELIVERED
        )

        assert updated.tracking_status == TrackingStatus.DELIVERED

    def test_scheduled_sale_can_be_delivered_directly(self, checkout_service, sale):
        updated = checkout_service.update_tracking_status(
            sale.id, TrackingStatus.DELIVERED
        )

        assert updated.tracking_status == TrackingStatus.DELIVERED

    @pytest.mark.parametrize(
        "reached, target",
        [
            (TrackingStatus.IN_PROGRESS, TrackingStatus.SCHEDULED),
            (TrackingStatus.DELIVERED, TrackingStatus.IN_PROGRESS),
            (TrackingStatus.DELIVERED, TrackingStatus.SCHEDULED),
        ],
    )
    def test_tracking_never_goes_back(self, checkout_service, sale, reached, target):
        checkout_service.update_tracking_status(sale.id, reached)

        with pytest.raises(InvalidStatusTransition):
            checkout_service.update_tracking_status(sale.id, target)

        sale.refresh_from_db()
        assert sale.tracking_status == reached

    def test_unknown_order(self, checkout_service):
        with pytest.raises(SaleNotFound):
            checkout_service.update_payment_status(uuid4(), SaleStatus.PAID)
        with pytest.raises(SaleNotFound):
            checkout_service.update_tracking_status("not-a-uuid", TrackingStatus.DELIVERED)


# ---------------------------------------------------------------------------
# Celery task
# ---------------------------------------------------------------------------


class TestReconcileSaleTask:
    @pytest.fixture(autouse=True)
    def _celery_eager(self, settings):
        settings.CELERY_TASK_ALWAYS_EAGER = True
        settings.CELERY_TASK_EAGER_PROPAGATES = True

    def test_missing_sale(self):
        from modules.checkout.tasks import reconcile_sale

        sale_id = str(uuid4())
        result = reconcile_sale.apply(args=[sale_id])

        assert result.get() == {"sale_id": sale_id, "status": "missing"}

    def test_reconciles_pending_sale(
        self, checkout_service, shop_client, shipping, discounted_cart, grant
    ):
        from modules.checkout.tasks import reconcile_sale

        with patch.object(
            DiscountService, "mark_code_used", side_effect=RuntimeError("store down")
        ):
            sale = checkout_service.confirm(_submission(shop_client, shipping))

        result = reconcile_sale.apply(args=[str(sale.id)])

        assert result.get() == {"sale_id": str(sale.id), "status": "reconciled"}
        sale.refresh_from_db()
        assert sale.discount_status == DiscountStatus.CONFIRMED
