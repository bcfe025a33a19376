"""Cart DTOs for the Service Layer.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models.

- ``AddItemDTO`` / ``UpdateQuantityDTO`` / ``RemoveItemDTO``: cart commands.
- ``DiscountSnapshot``: the discount stored on a cart, either pending (no
  ``order_id``) or applied (``order_id`` set).  Persisted as JSON with
  snake_case keys and rendered to the API in camelCase.
- ``CleanupReportDTO``: outcome of the duplicate-active-cart sweep.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from modules.carts.constants import MONEY_QUANTUM, ZERO


def compute_discount_amount(subtotal: Decimal, percentage: Decimal) -> Decimal:
    """``subtotal x percentage / 100`` rounded half-up to cents."""
    amount = (Decimal(subtotal) * Decimal(percentage) / Decimal(100)).quantize(
        MONEY_QUANTUM, rounding=ROUND_HALF_UP
    )
    return max(ZERO, amount)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class AddItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: UUID
    item_type: str
    item_id: UUID
    quantity: int


class UpdateQuantityDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: UUID
    item_id: UUID
    quantity: int


class RemoveItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: UUID
    item_id: UUID


# ---------------------------------------------------------------------------
# Discount snapshot
# ---------------------------------------------------------------------------


class DiscountSnapshot(BaseModel):
    """Discount attached to a cart.

    ``percentage`` is kept next to the display label so the pending amount
    can be re-derived whenever the cart subtotal changes.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    code: str
    code_id: str
    name: str
    discount: str
    percentage: Decimal
    amount: Decimal
    color: str = ""
    text_color: str = ""
    applied_at: datetime
    order_id: Optional[UUID] = None

    def rebased(self, subtotal: Decimal) -> DiscountSnapshot:
        """Same discount recomputed against a new subtotal."""
        return self.model_copy(
            update={"amount": compute_discount_amount(subtotal, self.percentage)}
        )

    def confirmed(self, order_id: UUID, applied_at: datetime) -> DiscountSnapshot:
        return self.model_copy(update={"order_id": order_id, "applied_at": applied_at})

    def to_storage(self) -> dict:
        return self.model_dump(mode="json")

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


class CleanupReportDTO(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    clients_affected: int
    carts_archived: int
    archived_cart_ids: List[UUID] = []
