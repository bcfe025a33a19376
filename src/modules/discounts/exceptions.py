"""Discount domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, DomainValidationError


class InvalidDiscountCode(DomainValidationError):
    """Unknown, used, expired or malformed promotional code."""

    default_message = "Discount code is not valid."


class EmptyCartDiscount(DomainValidationError):
    default_message = "A discount cannot be applied to an empty cart."


class NoPendingDiscount(ConflictError):
    default_message = "The cart has no pending discount to confirm."


class DiscountAlreadyApplied(ConflictError):
    default_message = "The cart already has a confirmed discount."


class SaleCartMismatch(ConflictError):
    default_message = "The order does not reference this cart."
