"""Catalog constants shared with the cart."""

from django.db import models


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class ItemType(models.TextChoices):
    """Kind of catalog entity a cart line points at."""

    PRODUCT = "product", "Product"
    CUSTOM_PRODUCT = "customProduct", "Custom product"
