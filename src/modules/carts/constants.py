"""Cart domain constants."""

from decimal import Decimal

from django.db import models


class CartStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Activo"
    COMPLETED = "COMPLETED", "Completado"


MIN_ITEM_QUANTITY = 1
MAX_ITEM_QUANTITY = 99

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")
