"""Unit tests for the envelope exception handler."""

import pytest
from django.db import IntegrityError, OperationalError
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated, ValidationError

from modules.core.exceptions import (
    ConflictError,
    DomainValidationError,
    NotFoundError,
    envelope_exception_handler,
)

pytestmark = pytest.mark.unit


def _handle(exc):
    return envelope_exception_handler(exc, {"view": None, "request": None})


class TestDomainErrors:
    @pytest.mark.parametrize(
        "exc, expected_status",
        [
            (DomainValidationError("bad"), status.HTTP_400_BAD_REQUEST),
            (NotFoundError("missing"), status.HTTP_404_NOT_FOUND),
            (ConflictError("busy"), status.HTTP_409_CONFLICT),
        ],
    )
    def test_status_codes(self, exc, expected_status):
        response = _handle(exc)

        assert response.status_code == expected_status
        assert response.data["success"] is False
        assert response.data["message"] == exc.message
        assert response.data["data"] is None

    def test_field_errors_are_listed(self):
        response = _handle(DomainValidationError.for_field("quantity", "Too many."))
        assert response.data["errors"] == [{"field": "quantity", "detail": "Too many."}]

    def test_from_errors_names_the_fields(self):
        exc = DomainValidationError.from_errors(
            [
                {"field": "receiverPhone", "detail": "x"},
                {"field": "deliveryDate", "detail": "y"},
            ]
        )
        assert exc.message == "Invalid fields: deliveryDate, receiverPhone."

    def test_default_message(self):
        assert NotFoundError().message == "Resource not found."


class TestFrameworkErrors:
    def test_drf_validation_error_is_flattened(self):
        response = _handle(
            ValidationError({"quantity": ["Ensure this value is less than or equal to 99."]})
        )

        assert response.status_code == 400
        assert response.data["message"] == "Invalid fields: quantity."
        assert response.data["errors"][0]["field"] == "quantity"

    def test_authentication_error_keeps_status(self):
        response = _handle(NotAuthenticated())

        assert response.status_code == 401
        assert response.data["success"] is False
        assert response.data["errors"] == []

    def test_database_error_maps_to_503(self):
        response = _handle(OperationalError("connection refused"))

        assert response.status_code == 503
        assert "connection refused" not in response.data["message"]

    def test_integrity_error_maps_to_409(self):
        response = _handle(
            IntegrityError("duplicate key value violates unique constraint")
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["success"] is False
        assert "duplicate key" not in response.data["message"]

    def test_unhandled_error_maps_to_500(self):
        response = _handle(KeyError("boom"))

        assert response.status_code == 500
        assert response.data["message"] == "Internal server error."
