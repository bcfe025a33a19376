"""Checkout domain constants."""

from django.db import models


class PaymentType(models.TextChoices):
    TRANSFER = "Transfer", "Transferencia"
    DEBIT = "Debit", "Débito"
    CREDIT = "Credit", "Crédito"
    CASH = "Cash", "Efectivo"


class SaleStatus(models.TextChoices):
    PENDING = "PENDING", "Pendiente"
    PAID = "PAID", "Pagado"


class TrackingStatus(models.TextChoices):
    SCHEDULED = "SCHEDULED", "Agendado"
    IN_PROGRESS = "IN_PROGRESS", "En proceso"
    DELIVERED = "DELIVERED", "Entregado"


# Forward-only: a sale is paid once, and shipping never goes back a step.
PAYMENT_STATUS_TRANSITIONS: dict[str, set[str]] = {
    SaleStatus.PENDING: {SaleStatus.PAID},
    SaleStatus.PAID: set(),
}

TRACKING_STATUS_TRANSITIONS: dict[str, set[str]] = {
    TrackingStatus.SCHEDULED: {TrackingStatus.IN_PROGRESS, TrackingStatus.DELIVERED},
    TrackingStatus.IN_PROGRESS: {TrackingStatus.DELIVERED},
    TrackingStatus.DELIVERED: set(),
}


class DiscountStatus(models.TextChoices):
    """Progress of the discount-confirmation step for one sale."""

    NONE = "NONE", "Sin descuento"
    PENDING = "PENDING", "Confirmación pendiente"
    CONFIRMED = "CONFIRMED", "Confirmado"


# Card payments are processed by the storefront; no proof is uploaded.
CARD_PAYMENT_TYPES: frozenset[str] = frozenset(
    {PaymentType.DEBIT.value, PaymentType.CREDIT.value}
)


def is_card_payment(payment_type: str) -> bool:
    return str(payment_type) in CARD_PAYMENT_TYPES

RECEIVER_NAME_MIN_LENGTH = 12
RECEIVER_PHONE_LENGTH = 9
DELIVERY_ADDRESS_MIN_LENGTH = 20
DELIVERY_POINT_MIN_LENGTH = 20

RECONCILE_MAX_RETRIES = 5
RECONCILE_BACKOFF_SECONDS = 30
