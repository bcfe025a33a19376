"""Client domain constants."""

from django.db import models


class GrantStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Activo"
    USED = "USED", "Usado"
    EXPIRED = "EXPIRED", "Expirado"
