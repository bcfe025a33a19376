"""Checkout DTOs for the Service Layer.

- ``ShippingDetailsDTO``: delivery data collected by the first wizard stage.
- ``CardDetailsDTO``: card fields validated locally and never submitted.
- ``CreateSaleDTO``: the final submission the orchestrator receives.

All DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Any, Optional
from uuid import UUID

from django.utils import timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.checkout.constants import (
    DELIVERY_ADDRESS_MIN_LENGTH,
    DELIVERY_POINT_MIN_LENGTH,
    RECEIVER_NAME_MIN_LENGTH,
    RECEIVER_PHONE_LENGTH,
    PaymentType,
    is_card_payment,
)

_PHONE_RE = re.compile(rf"^\d{{{RECEIVER_PHONE_LENGTH}}}$")
_EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])\s*/\s*(\d{2}|\d{4})$")

# API field names, used when reporting pydantic errors.
SHIPPING_FIELD_ALIASES = {
    "receiver_name": "receiverName",
    "receiver_phone": "receiverPhone",
    "delivery_address": "deliveryAddress",
    "delivery_point": "deliveryPoint",
    "delivery_date": "deliveryDate",
}
CARD_FIELD_ALIASES = {
    "number": "cardNumber",
    "holder": "cardHolder",
    "expiry": "cardExpiry",
    "cvv": "cardCvv",
}


def luhn_valid(number: str) -> bool:
    total = 0
    for index, char in enumerate(reversed(number)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


class ShippingDetailsDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    receiver_name: str = Field(min_length=RECEIVER_NAME_MIN_LENGTH, max_length=120)
    receiver_phone: str
    delivery_address: str = Field(min_length=DELIVERY_ADDRESS_MIN_LENGTH)
    delivery_point: str = Field(min_length=DELIVERY_POINT_MIN_LENGTH)
    delivery_date: date

    @field_validator("receiver_phone")
    @classmethod
    def phone_has_nine_digits(cls, v: str) -> str:
        if not _PHONE_RE.match(v):
            raise ValueError(
                f"Phone number must have exactly {RECEIVER_PHONE_LENGTH} digits."
            )
        return v

    @field_validator("delivery_date")
    @classmethod
    def date_not_in_past(cls, v: date) -> date:
        if v < timezone.localdate():
            raise ValueError("Delivery date cannot be in the past.")
        return v


class CardDetailsDTO(BaseModel):
    """Card data checked on the buyer's side only.

    The orchestrator never receives these fields; only the last four digits
    survive on the checkout draft for the review screen.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    number: str = Field(repr=False)
    holder: str = Field(min_length=1)
    expiry: str
    cvv: str = Field(repr=False)

    @field_validator("number")
    @classmethod
    def number_passes_luhn(cls, v: str) -> str:
        digits = re.sub(r"[\s-]", "", v)
        if not digits.isdigit() or not 13 <= len(digits) <= 19 or not luhn_valid(digits):
            raise ValueError("Card number is not valid.")
        return digits

    @field_validator("expiry")
    @classmethod
    def expiry_in_future(cls, v: str) -> str:
        match = _EXPIRY_RE.match(v)
        if not match:
            raise ValueError("Expiry must use the MM/YY format.")
        month = int(match.group(1))
        year = int(match.group(2))
        if year < 100:
            year += 2000
        last_day = date(year, month, calendar.monthrange(year, month)[1])
        if last_day < timezone.localdate():
            raise ValueError("Card has expired.")
        return v

    @field_validator("cvv")
    @classmethod
    def cvv_has_three_or_four_digits(cls, v: str) -> str:
        if not re.fullmatch(r"\d{3,4}", v):
            raise ValueError("CVV must have 3 or 4 digits.")
        return v

    @property
    def last4(self) -> str:
        return self.number[-4:]


class CreateSaleDTO(BaseModel):
    """Final checkout submission.

    ``payment_proof`` is the uploaded file object (Django ``UploadedFile``);
    it is required unless the payment type is card-based.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    client_id: UUID
    shipping: ShippingDetailsDTO
    payment_type: PaymentType
    payment_proof: Optional[Any] = Field(default=None, repr=False)

    @property
    def is_card_payment(self) -> bool:
        return is_card_payment(self.payment_type)
