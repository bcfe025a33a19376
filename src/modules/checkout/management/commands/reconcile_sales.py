from __future__ import annotations

from django.core.management.base import BaseCommand

from modules.checkout.repositories.django_repository import SaleDjangoRepository
from modules.checkout.services import build_checkout_service


class Command(BaseCommand):
    help = "Finish discount confirmation and cart archival for unreconciled sales."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=None)

    def handle(self, *args, **options):
        service = build_checkout_service()
        pending = SaleDjangoRepository().list_pending_reconciliation(options["limit"])

        reconciled = 0
        for sale in pending:
            if not service.reconcile(sale.id).needs_reconciliation:
                reconciled += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Reconciliation completed: pending={len(pending)}, "
                f"reconciled={reconciled}, "
                f"remaining={len(pending) - reconciled}"
            )
        )
