"""Catalog read models.

- ``Product``: a regular catalog article, priced by ``price``.
- ``CustomProduct``: a buyer-composed gift priced by its precomputed
  ``total_price`` (sum of the selected materials).

Both are soft-deleted so cart lines keep pointing at the row they were priced
from.  Catalog editing happens elsewhere; the cart only reads these tables.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.catalog.constants import ProductStatus
from modules.core.models import SoftDeleteModel


class Product(SoftDeleteModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "catalog_products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="catalog_products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="catalog_products_price_non_negative",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def __str__(self) -> str:
        return self.name


class CustomProduct(SoftDeleteModel):
    """Gift composed by a buyer from catalog materials.

    ``materials`` is the list of selected materials as sent by the composer,
    e.g. ``[{"materialId": "...", "name": "Rosa roja", "price": "2.50"}]``.
    """

    name = models.CharField(max_length=255)
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="custom_products",
    )
    materials = models.JSONField(default=list, blank=True)
    total_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        db_table = "catalog_custom_products"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} (${self.total_price})"
