"""Unit tests for the checkout wizard and its DTOs.

Covers:
- ShippingDetailsDTO field rules
- CardDetailsDTO (Luhn, expiry, CVV)
- CheckoutDraft transitions (forward, back, jumps, submission)
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from django.utils import timezone
from pydantic import ValidationError

from modules.checkout.constants import PaymentType
from modules.checkout.dtos import CardDetailsDTO, ShippingDetailsDTO, luhn_valid
from modules.checkout.exceptions import PaymentProofRequired, WizardStageError
from modules.checkout.wizard import CheckoutDraft, CheckoutStage
from modules.core.exceptions import DomainValidationError

pytestmark = pytest.mark.unit

VALID_CARD = "4111 1111 1111 1111"


@pytest.fixture()
def shipping_data():
    return {
        "receiver_name": "María López García",
        "receiver_phone": "777788889",
        "delivery_address": "Colonia Escalón, calle principal 123",
        "delivery_point": "Frente al parque, portón negro",
        "delivery_date": timezone.localdate() + timedelta(days=1),
    }


@pytest.fixture()
def card_data():
    expiry = timezone.localdate() + timedelta(days=400)
    return {
        "number": VALID_CARD,
        "holder": "MARIA LOPEZ",
        "expiry": expiry.strftime("%m/%y"),
        "cvv": "123",
    }


@pytest.fixture()
def draft():
    return CheckoutDraft(client_id=uuid4())


# ---------------------------------------------------------------------------
# DTOs
# ---------------------------------------------------------------------------


class TestShippingDetails:
    def test_valid_data_is_stripped(self, shipping_data):
        shipping_data["receiver_name"] = "  María López García  "
        dto = ShippingDetailsDTO(**shipping_data)
        assert dto.receiver_name == "María López García"

    def test_short_name_rejected(self, shipping_data):
        shipping_data["receiver_name"] = "María"
        with pytest.raises(ValidationError):
            ShippingDetailsDTO(**shipping_data)

    @pytest.mark.parametrize("phone", ["7777888", "77778888a", "7777-88889", "7777888899"])
    def test_phone_must_have_nine_digits(self, shipping_data, phone):
        shipping_data["receiver_phone"] = phone
        with pytest.raises(ValidationError):
            ShippingDetailsDTO(**shipping_data)

    def test_short_address_rejected(self, shipping_data):
        shipping_data["delivery_address"] = "Calle 1"
        with pytest.raises(ValidationError):
            ShippingDetailsDTO(**shipping_data)

    def test_past_date_rejected(self, shipping_data):
        shipping_data["delivery_date"] = timezone.localdate() - timedelta(days=1)
        with pytest.raises(ValidationError):
            ShippingDetailsDTO(**shipping_data)

    def test_today_is_allowed(self, shipping_data):
        shipping_data["delivery_date"] = timezone.localdate()
        assert ShippingDetailsDTO(**shipping_data).delivery_date == timezone.localdate()


class TestCardDetails:
    def test_luhn(self):
        assert luhn_valid("4111111111111111")
        assert not luhn_valid("4111111111111112")

    def test_valid_card_keeps_last_four(self, card_data):
        card = CardDetailsDTO(**card_data)
        assert card.number == "4111111111111111"
        assert card.last4 == "1111"

    def test_card_number_not_in_repr(self, card_data):
        assert "4111" not in repr(CardDetailsDTO(**card_data))

    def test_invalid_number_rejected(self, card_data):
        card_data["number"] = "4111 1111 1111 1112"
        with pytest.raises(ValidationError):
            CardDetailsDTO(**card_data)

    def test_expired_card_rejected(self, card_data):
        past = timezone.localdate() - timedelta(days=62)
        card_data["expiry"] = past.strftime("%m/%y")
        with pytest.raises(ValidationError):
            CardDetailsDTO(**card_data)

    @pytest.mark.parametrize("expiry", ["13/30", "1/30", "2030-01"])
    def test_malformed_expiry_rejected(self, card_data, expiry):
        card_data["expiry"] = expiry
        with pytest.raises(ValidationError):
            CardDetailsDTO(**card_data)

    @pytest.mark.parametrize("cvv", ["12", "12345", "12a"])
    def test_bad_cvv_rejected(self, card_data, cvv):
        card_data["cvv"] = cvv
        with pytest.raises(ValidationError):
            CardDetailsDTO(**card_data)


# ---------------------------------------------------------------------------
# Draft transitions
# ---------------------------------------------------------------------------


class TestCheckoutDraft:
    def test_starts_at_shipping(self, draft):
        assert draft.stage == CheckoutStage.SHIPPING
        assert not draft.is_complete

    def test_shipping_moves_to_payment(self, draft, shipping_data):
        moved = draft.with_shipping(shipping_data)

        assert moved.stage == CheckoutStage.PAYMENT
        assert moved.shipping.receiver_phone == "777788889"
        assert draft.stage == CheckoutStage.SHIPPING

    def test_invalid_shipping_reports_api_field_names(self, draft, shipping_data):
        shipping_data["receiver_phone"] = "123"
        shipping_data["delivery_address"] = "corta"

        with pytest.raises(DomainValidationError) as exc_info:
            draft.with_shipping(shipping_data)

        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"receiverPhone", "deliveryAddress"}

    def test_payment_before_shipping_rejected(self, draft):
        with pytest.raises(WizardStageError):
            draft.with_payment(PaymentType.TRANSFER, payment_proof=object())

    def test_transfer_requires_proof(self, draft, shipping_data):
        with pytest.raises(PaymentProofRequired):
            draft.with_shipping(shipping_data).with_payment(PaymentType.TRANSFER)

    def test_cash_requires_proof(self, draft, shipping_data):
        with pytest.raises(PaymentProofRequired):
            draft.with_shipping(shipping_data).with_payment("Cash")

    def test_unknown_payment_type_rejected(self, draft, shipping_data):
        with pytest.raises(DomainValidationError) as exc_info:
            draft.with_shipping(shipping_data).with_payment("Bitcoin")
        assert exc_info.value.errors[0]["field"] == "paymentType"

    def test_card_payment_requires_card(self, draft, shipping_data):
        with pytest.raises(DomainValidationError):
            draft.with_shipping(shipping_data).with_payment(PaymentType.CREDIT)

    def test_invalid_card_reports_card_fields(self, draft, shipping_data, card_data):
        card_data["cvv"] = "1"
        with pytest.raises(DomainValidationError) as exc_info:
            draft.with_shipping(shipping_data).with_payment("Debit", card=card_data)
        assert exc_info.value.errors[0]["field"] == "cardCvv"

    def test_card_payment_keeps_only_last_four(self, draft, shipping_data, card_data):
        reviewed = draft.with_shipping(shipping_data).with_payment(
            PaymentType.DEBIT, payment_proof=object(), card=card_data
        )

        assert reviewed.stage == CheckoutStage.REVIEW
        assert reviewed.card_last4 == "1111"
        assert reviewed.payment_proof is None

    def test_back_keeps_collected_data(self, draft, shipping_data):
        proof = object()
        reviewed = draft.with_shipping(shipping_data).with_payment(
            PaymentType.TRANSFER, payment_proof=proof
        )

        back = reviewed.back().back()

        assert back.stage == CheckoutStage.SHIPPING
        assert back.shipping == reviewed.shipping
        assert back.payment_proof is proof
        assert back.back().stage == CheckoutStage.SHIPPING

    def test_go_to_review_requires_payment(self, draft, shipping_data):
        with pytest.raises(WizardStageError):
            draft.with_shipping(shipping_data).go_to("review")

    def test_go_to_payment_requires_shipping(self, draft):
        with pytest.raises(WizardStageError):
            draft.go_to(CheckoutStage.PAYMENT)

    def test_submission_only_from_review(self, draft, shipping_data):
        proof = object()
        reviewed = draft.with_shipping(shipping_data).with_payment(
            PaymentType.TRANSFER, payment_proof=proof
        )

        with pytest.raises(WizardStageError):
            reviewed.back().to_submission()

        submission = reviewed.to_submission()
        assert submission.client_id == draft.client_id
        assert submission.payment_type == PaymentType.TRANSFER
        assert submission.payment_proof is proof
        assert not submission.is_card_payment

    def test_card_submission_has_no_card_fields(self, draft, shipping_data, card_data):
        submission = (
            draft.with_shipping(shipping_data)
            .with_payment(PaymentType.CREDIT, card=card_data)
            .to_submission()
        )

        assert submission.is_card_payment
        assert submission.payment_proof is None
        dumped = submission.model_dump()
        assert "card_last4" not in dumped
        assert VALID_CARD.replace(" ", "") not in str(dumped)
