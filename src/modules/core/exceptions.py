"""Error taxonomy shared by every storefront module.

Services raise subclasses of ``DomainError``; the API layer renders them
through ``envelope_exception_handler`` (configured as DRF's
``EXCEPTION_HANDLER``) using the same ``{success, message, data, errors}``
envelope as successful responses.

| Class                  | HTTP | Meaning                                    |
|------------------------|------|--------------------------------------------|
| DomainValidationError  | 400  | malformed / out-of-range input             |
| NotFoundError          | 404  | cart, item, client, grant or sale absent   |
| ConflictError          | 409  | state does not allow the operation         |
| UpstreamUnavailable    | 503  | document store or object storage failed    |

A database ``IntegrityError`` renders as 409 and any other ``DatabaseError`` as
503.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from modules.core.responses import envelope

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for business-rule violations raised by the Service Layer."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed."

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class DomainValidationError(DomainError):
    """Input violates a business rule before anything is persisted."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed."

    @classmethod
    def for_field(cls, field: str, detail: str) -> DomainValidationError:
        return cls(detail, errors=[{"field": field, "detail": detail}])

    @classmethod
    def from_errors(cls, errors: List[Dict[str, str]]) -> DomainValidationError:
        fields = ", ".join(sorted({e["field"] for e in errors}))
        return cls(f"Invalid fields: {fields}.", errors=errors)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource state does not allow this operation."


class UpstreamUnavailable(DomainError):
    """A store or external service failed; no partial mutation happened."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable, please retry."


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------


def envelope_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """Render every error with the storefront response envelope."""
    if isinstance(exc, DomainError):
        logger.info(
            "api.domain_error",
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            detail=exc.message,
        )
        return Response(
            envelope(None, exc.message, success=False, errors=exc.errors),
            status=exc.status_code,
        )

    if isinstance(exc, IntegrityError):
        logger.warning("api.integrity_conflict", error=str(exc))
        return Response(
            envelope(None, ConflictError.default_message, success=False),
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, DatabaseError):
        logger.error("api.store_unavailable", error=str(exc))
        return Response(
            envelope(
                None, UpstreamUnavailable.default_message, success=False
            ),
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("api.unhandled_error", error_type=type(exc).__name__)
        return Response(
            envelope(None, "Internal server error.", success=False),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        errors = _flatten_validation_errors(exc.detail)
        fields = ", ".join(sorted({e["field"] for e in errors}))
        message = f"Invalid fields: {fields}." if fields else "Validation failed."
    else:
        errors = []
        message = _detail_to_text(
            exc.detail if isinstance(exc, APIException) else response.data
        )

    response.data = envelope(None, message, success=False, errors=errors)
    return response


def _flatten_validation_errors(detail: Any, prefix: str = "") -> List[Dict[str, str]]:
    if isinstance(detail, dict):
        errors: List[Dict[str, str]] = []
        for key, value in detail.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            errors.extend(_flatten_validation_errors(value, field))
        return errors
    if isinstance(detail, list):
        errors = []
        for value in detail:
            errors.extend(_flatten_validation_errors(value, prefix))
        return errors
    return [{"field": prefix or "non_field_errors", "detail": str(detail)}]


def _detail_to_text(detail: Any) -> str:
    if isinstance(detail, dict):
        return str(detail.get("detail", detail))
    if isinstance(detail, list):
        return " ".join(str(item) for item in detail)
    return str(detail)


def errors_from_pydantic(exc: Any, aliases: Optional[Dict[str, str]] = None) -> List[Dict[str, str]]:
    """Flatten a ``pydantic.ValidationError`` into ``[{field, detail}]``."""
    aliases = aliases or {}
    errors: List[Dict[str, str]] = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
        field = aliases.get(loc, loc) or "non_field_errors"
        message = str(error.get("msg", "Invalid value."))
        errors.append({"field": field, "detail": message.removeprefix("Value error, ")})
    return errors
