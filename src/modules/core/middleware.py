import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

CORRELATION_HEADERS = ("HTTP_X_REQUEST_ID", "HTTP_X_CORRELATION_ID")


class CorrelationIdMiddleware:
    """Binds a correlation id to every log line of a request.

    The id comes from ``X-Request-ID`` (or ``X-Correlation-ID``) and falls
    back to a fresh UUID4.  It is echoed in the ``X-Request-ID`` response
    header so storefront error reports can be matched with API logs.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = next(
            (request.META[h] for h in CORRELATION_HEADERS if request.META.get(h)),
            None,
        ) or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        response = self.get_response(request)

        logger.info(
            "http.request",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )

        response["X-Request-ID"] = cid
        return response
