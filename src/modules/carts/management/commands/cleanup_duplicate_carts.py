from __future__ import annotations

from django.core.management.base import BaseCommand

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.services import CartService
from modules.catalog.repositories.django_repository import CatalogDjangoRepository
from modules.clients.repositories.django_repository import ClientDjangoRepository


class Command(BaseCommand):
    help = "Archive duplicate ACTIVE carts, keeping the newest one per client."

    def handle(self, *args, **options):
        service = CartService(
            cart_repository=CartDjangoRepository(),
            client_repository=ClientDjangoRepository(),
            catalog_repository=CatalogDjangoRepository(),
        )
        report = service.cleanup_duplicate_carts()
        self.stdout.write(
            self.style.SUCCESS(
                "Cleanup completed: "
                f"clients={report.clients_affected}, "
                f"archived={report.carts_archived}"
            )
        )
