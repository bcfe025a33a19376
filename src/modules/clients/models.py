"""Client read model and promotional-code grants.

Clients are managed by the account service; this module only reads them and
flips grant usage state.  A ``DiscountCodeGrant`` is a client's entitlement to
use one promotional code once (won on the storefront's discount wheel).
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import models
from django.utils import timezone

from modules.clients.constants import GrantStatus
from modules.core.models import BaseModel, SoftDeleteModel

_PERCENT_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*%?\s*$")


class Client(SoftDeleteModel):
    """Storefront buyer."""

    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    address = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "clients"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class DiscountCodeGrant(BaseModel):
    """One promotional code granted to one client.

    ``discount`` keeps the label shown to the buyer (e.g. ``"10%"``);
    ``percentage`` parses it for amount calculations.
    """

    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.CASCADE,
        related_name="discount_grants",
    )
    code_id = models.CharField(max_length=64)
    code = models.CharField(max_length=64, db_index=True)
    name = models.CharField(max_length=120)
    discount = models.CharField(max_length=10)
    color = models.CharField(max_length=20, blank=True, default="")
    text_color = models.CharField(max_length=20, blank=True, default="")
    status = models.CharField(
        max_length=10,
        choices=GrantStatus.choices,
        default=GrantStatus.ACTIVE,
        db_index=True,
    )
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    used_in_order_id = models.UUIDField(null=True, blank=True)

    class Meta:
        db_table = "client_discount_grants"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["client", "code_id"],
                name="grants_client_code_id_unique",
            ),
        ]

    @property
    def percentage(self) -> Optional[Decimal]:
        """Numeric percentage from the label, ``None`` when unparsable."""
        match = _PERCENT_RE.match(self.discount or "")
        if not match:
            return None
        try:
            return Decimal(match.group(1))
        except InvalidOperation:
            return None

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()

    def __str__(self) -> str:
        return f"{self.code} ({self.status})"
