"""Checkout background tasks.

``checkout.reconcile_sale`` finishes the discount confirmation and cart
archival of a Sale whose checkout left them unfinished.  It retries with
exponential backoff; the ``reconcile_sales`` management command sweeps
whatever is still pending after the retries run out.
"""

import structlog
from celery import shared_task

from modules.checkout.constants import RECONCILE_BACKOFF_SECONDS, RECONCILE_MAX_RETRIES
from modules.checkout.exceptions import SaleNotFound
from modules.checkout.services import build_checkout_service

logger = structlog.get_logger(__name__)


@shared_task(bind=True, name="checkout.reconcile_sale", max_retries=RECONCILE_MAX_RETRIES)
def reconcile_sale(self, sale_id: str) -> dict:
    try:
        sale = build_checkout_service().reconcile(sale_id)
    except SaleNotFound:
        logger.warning("checkout.reconcile_sale_missing", sale_id=sale_id)
        return {"sale_id": sale_id, "status": "missing"}

    if sale.needs_reconciliation:
        countdown = RECONCILE_BACKOFF_SECONDS * (2 ** self.request.retries)
        logger.warning(
            "checkout.reconcile_retry",
            sale_id=sale_id,
            attempt=self.request.retries + 1,
            countdown=countdown,
        )
        raise self.retry(countdown=countdown)

    return {"sale_id": sale_id, "status": "reconciled"}
