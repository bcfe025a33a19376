"""Catalog DTOs."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PricedItemDTO(BaseModel):
    """A catalog entity resolved to the price a cart line must use."""

    model_config = ConfigDict(frozen=True)

    item_type: str
    item_id: UUID
    name: str
    unit_price: Decimal
