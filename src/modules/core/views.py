import time

import structlog
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

logger = structlog.get_logger(__name__)


def health_check(request: HttpRequest) -> JsonResponse:
    """Public liveness check: the API is healthy when the database answers."""
    try:
        start = time.monotonic()
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        database = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
        healthy = True
    except DatabaseError:
        logger.error("health_check.database_down", exc_info=True)
        database = {"status": "down"}
        healthy = False

    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": {"database": database},
        },
        status=200 if healthy else 503,
    )
