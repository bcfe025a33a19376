"""Client-held checkout wizard.

``CheckoutDraft`` is an immutable state object moved through three stages::

    SHIPPING -> PAYMENT -> REVIEW

Each transition returns a new draft; nothing is persisted until the REVIEW
draft is turned into a ``CreateSaleDTO`` and handed to
``CheckoutService.confirm``.  Going back keeps the collected data.

Card details are validated here and dropped: only the last four digits stay
on the draft, and the submission never carries card fields.
"""

from __future__ import annotations

import enum
from typing import Any, Mapping, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from modules.checkout.constants import PaymentType, is_card_payment
from modules.checkout.dtos import (
    CARD_FIELD_ALIASES,
    SHIPPING_FIELD_ALIASES,
    CardDetailsDTO,
    CreateSaleDTO,
    ShippingDetailsDTO,
)
from modules.checkout.exceptions import PaymentProofRequired, WizardStageError
from modules.core.exceptions import DomainValidationError, errors_from_pydantic


class CheckoutStage(str, enum.Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"


_STAGES = [CheckoutStage.SHIPPING, CheckoutStage.PAYMENT, CheckoutStage.REVIEW]


class CheckoutDraft(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    client_id: UUID
    stage: CheckoutStage = CheckoutStage.SHIPPING
    shipping: Optional[ShippingDetailsDTO] = None
    payment_type: Optional[PaymentType] = None
    payment_proof: Optional[Any] = Field(default=None, repr=False, exclude=True)
    card_last4: Optional[str] = None

    # ------------------------------------------------------------------
    # Forward
    # ------------------------------------------------------------------

    def with_shipping(
        self, shipping: Union[ShippingDetailsDTO, Mapping[str, Any]]
    ) -> CheckoutDraft:
        """Store delivery data and move to PAYMENT."""
        if not isinstance(shipping, ShippingDetailsDTO):
            try:
                shipping = ShippingDetailsDTO(**shipping)
            except PydanticValidationError as exc:
                raise DomainValidationError.from_errors(
                    errors_from_pydantic(exc, SHIPPING_FIELD_ALIASES)
                ) from exc
        return self.model_copy(
            update={"shipping": shipping, "stage": CheckoutStage.PAYMENT}
        )

    def with_payment(
        self,
        payment_type: Union[PaymentType, str],
        payment_proof: Any = None,
        card: Optional[Mapping[str, Any]] = None,
    ) -> CheckoutDraft:
        """Store the payment choice and move to REVIEW.

        Card payments need valid ``card`` details (number, holder, expiry,
        cvv); every other payment type needs a ``payment_proof`` file.
        """
        if self.shipping is None:
            raise WizardStageError("Shipping details are required before payment.")

        try:
            payment_type = PaymentType(payment_type)
        except ValueError as exc:
            raise DomainValidationError.for_field(
                "paymentType", f"Unsupported payment type: {payment_type}."
            ) from exc

        card_last4 = None
        if is_card_payment(payment_type):
            if not card:
                raise DomainValidationError.for_field(
                    "cardNumber", "Card details are required for card payments."
                )
            try:
                card_last4 = CardDetailsDTO(**card).last4
            except PydanticValidationError as exc:
                raise DomainValidationError.from_errors(
                    errors_from_pydantic(exc, CARD_FIELD_ALIASES)
                ) from exc
            payment_proof = None
        elif payment_proof is None:
            raise PaymentProofRequired.for_field(
                "paymentProof", "A payment proof is required for this payment type."
            )

        return self.model_copy(
            update={
                "payment_type": payment_type,
                "payment_proof": payment_proof,
                "card_last4": card_last4,
                "stage": CheckoutStage.REVIEW,
            }
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def back(self) -> CheckoutDraft:
        """Previous stage; collected data is kept."""
        index = _STAGES.index(self.stage)
        if index == 0:
            return self
        return self.model_copy(update={"stage": _STAGES[index - 1]})

    def go_to(self, stage: Union[CheckoutStage, str]) -> CheckoutDraft:
        """Jump to ``stage``; forward jumps need the earlier stages' data."""
        stage = CheckoutStage(stage)
        if stage in (CheckoutStage.PAYMENT, CheckoutStage.REVIEW) and self.shipping is None:
            raise WizardStageError("Shipping details are required first.")
        if stage == CheckoutStage.REVIEW and self.payment_type is None:
            raise WizardStageError("Payment details are required first.")
        return self.model_copy(update={"stage": stage})

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @property
    def is_complete(self) -> bool:
        return self.shipping is not None and self.payment_type is not None

    def to_submission(self) -> CreateSaleDTO:
        if self.stage != CheckoutStage.REVIEW or not self.is_complete:
            raise WizardStageError("The order can only be confirmed from the review step.")
        return CreateSaleDTO(
            client_id=self.client_id,
            shipping=self.shipping,
            payment_type=self.payment_type,
            payment_proof=self.payment_proof,
        )
