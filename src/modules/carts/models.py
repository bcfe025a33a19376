"""Cart and CartItem models.

Rules implemented here:
- At most one ACTIVE cart per client (partial unique constraint).
- ``CartItem.subtotal`` is always ``quantity * unit_price`` (set on save);
  ``unit_price`` is the catalog price captured when the line was written.
- ``Cart.total`` is ``max(0, subtotal - applied discount)``; a pending
  discount never changes the total.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, Optional

from django.db import models

from modules.carts.constants import (
    MAX_ITEM_QUANTITY,
    MIN_ITEM_QUANTITY,
    ZERO,
    CartStatus,
)
from modules.carts.dtos import DiscountSnapshot
from modules.catalog.constants import ItemType
from modules.core.models import BaseModel


class Cart(BaseModel):
    """Shopping cart aggregate root.

    Carts are never deleted: a purchase flips ``status`` to COMPLETED and a
    fresh ACTIVE cart takes over.
    """

    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.PROTECT,
        related_name="carts",
    )
    status = models.CharField(
        max_length=10,
        choices=CartStatus.choices,
        default=CartStatus.ACTIVE,
    )
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    pending_discount = models.JSONField(null=True, blank=True)
    applied_discount = models.JSONField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "carts"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["client", "status"], name="carts_client_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["client"],
                condition=models.Q(status=CartStatus.ACTIVE),
                name="carts_one_active_per_client",
            ),
        ]

    # ------------------------------------------------------------------
    # Discount snapshots
    # ------------------------------------------------------------------

    @property
    def pending_snapshot(self) -> Optional[DiscountSnapshot]:
        if not self.pending_discount:
            return None
        return DiscountSnapshot.model_validate(self.pending_discount)

    @property
    def applied_snapshot(self) -> Optional[DiscountSnapshot]:
        if not self.applied_discount:
            return None
        return DiscountSnapshot.model_validate(self.applied_discount)

    @property
    def is_active(self) -> bool:
        return self.status == CartStatus.ACTIVE

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def recalculate_totals(self, items: Iterable[CartItem]) -> None:
        """Recompute subtotal, total and the pending discount amount."""
        self.subtotal = sum((item.subtotal for item in items), ZERO)

        pending = self.pending_snapshot
        if pending is not None:
            self.pending_discount = pending.rebased(self.subtotal).to_storage()

        applied = self.applied_snapshot
        applied_amount = applied.amount if applied is not None else ZERO
        self.total = max(ZERO, self.subtotal - applied_amount)

    def __str__(self) -> str:
        return f"Cart {self.id} ({self.status})"


class CartItem(BaseModel):
    """One line of a cart, addressed by ``(item_type, item_id)``."""

    cart = models.ForeignKey(
        "carts.Cart",
        on_delete=models.CASCADE,
        related_name="items",
    )
    item_type = models.CharField(max_length=20, choices=ItemType.choices)
    item_id = models.UUIDField()
    item_name = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveSmallIntegerField(default=MIN_ITEM_QUANTITY)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, editable=False)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "item_type", "item_id"],
                name="cart_items_unique_line",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    quantity__gte=MIN_ITEM_QUANTITY, quantity__lte=MAX_ITEM_QUANTITY
                ),
                name="cart_items_quantity_range",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = Decimal(self.quantity) * Decimal(self.unit_price)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "subtotal" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["subtotal"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.item_type}:{self.item_id} x{self.quantity}"
