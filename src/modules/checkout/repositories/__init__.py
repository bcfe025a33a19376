"""Sale repositories package."""

from modules.checkout.repositories.django_repository import SaleDjangoRepository
from modules.checkout.repositories.interfaces import ISaleRepository

__all__ = ["ISaleRepository", "SaleDjangoRepository"]
