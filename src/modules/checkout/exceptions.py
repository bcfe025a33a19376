"""Checkout domain exceptions."""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import (
    ConflictError,
    DomainValidationError,
    NotFoundError,
    UpstreamUnavailable,
)


class SaleNotFound(NotFoundError):
    default_message = "Order not found."


class EmptyCart(DomainValidationError):
    default_message = "The cart is empty."


class PaymentProofRequired(DomainValidationError):
    default_message = "A payment proof is required for this payment type."


class PaymentProofUploadFailed(UpstreamUnavailable):
    """Object storage rejected or timed out on the proof upload."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Payment proof could not be uploaded, please retry."


class WizardStageError(ConflictError):
    """A checkout draft was moved to a stage its data does not allow."""

    default_message = "Checkout step is not available yet."


class InvalidStatusTransition(ConflictError):
    """A payment or tracking status change moves backwards or skips a rule."""

    default_message = "Order status cannot change that way."
