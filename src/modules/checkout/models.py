"""Sale (order) model.

A Sale is created from the client's ACTIVE cart at checkout.  Discount
confirmation and cart archival run as separate units of work afterwards;
``discount_status`` and ``cart_archived`` record how far they got so the
reconciliation task can finish them.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from modules.checkout.constants import (
    PAYMENT_STATUS_TRANSITIONS,
    TRACKING_STATUS_TRANSITIONS,
    DiscountStatus,
    PaymentType,
    SaleStatus,
    TrackingStatus,
    is_card_payment,
)
from modules.core.models import BaseModel


class Sale(BaseModel):
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    cart = models.ForeignKey(
        "carts.Cart",
        on_delete=models.PROTECT,
        related_name="sales",
    )
    payment_type = models.CharField(max_length=10, choices=PaymentType.choices)
    payment_proof_url = models.URLField(max_length=500, blank=True, default="")
    status = models.CharField(
        max_length=10,
        choices=SaleStatus.choices,
        default=SaleStatus.PENDING,
    )
    tracking_status = models.CharField(
        max_length=12,
        choices=TrackingStatus.choices,
        default=TrackingStatus.SCHEDULED,
    )

    # Delivery
    receiver_name = models.CharField(max_length=120)
    receiver_phone = models.CharField(max_length=9)
    delivery_address = models.TextField()
    delivery_point = models.TextField()
    delivery_date = models.DateField()

    # Amounts captured at checkout
    subtotal_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    # Reconciliation markers
    discount_code_id = models.CharField(max_length=64, blank=True, default="")
    discount_status = models.CharField(
        max_length=10,
        choices=DiscountStatus.choices,
        default=DiscountStatus.NONE,
    )
    cart_archived = models.BooleanField(default=False)
    reconcile_attempts = models.PositiveIntegerField(default=0)
    last_reconcile_error = models.TextField(blank=True, default="")

    class Meta:
        db_table = "sales"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="sales_status_idx"),
            models.Index(fields=["client", "-created_at"], name="sales_client_idx"),
            models.Index(
                fields=["discount_status", "cart_archived"],
                name="sales_reconcile_idx",
            ),
        ]

    @property
    def is_card_payment(self) -> bool:
        return is_card_payment(self.payment_type)

    @property
    def needs_reconciliation(self) -> bool:
        return self.discount_status == DiscountStatus.PENDING or not self.cart_archived

    def can_change_payment_status_to(self, new_status: str) -> bool:
        return new_status in PAYMENT_STATUS_TRANSITIONS.get(self.status, set())

    def can_change_tracking_status_to(self, new_status: str) -> bool:
        return new_status in TRACKING_STATUS_TRANSITIONS.get(self.tracking_status, set())

    def __str__(self) -> str:
        return f"Sale {self.id} ({self.status})"
