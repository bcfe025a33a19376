"""Cart domain exceptions.

Raised by ``CartService``; rendered by the shared envelope exception handler.
"""

from __future__ import annotations

from modules.core.exceptions import ConflictError, DomainValidationError, NotFoundError


class CartNotFound(NotFoundError):
    default_message = "Cart not found."


class CartItemNotFound(NotFoundError):
    default_message = "Item not found in the active cart."


class CatalogItemNotFound(NotFoundError):
    """Unknown, inactive or deleted product / custom product."""

    default_message = "Product not found or not available."


class QuantityOutOfRange(DomainValidationError):
    default_message = "Quantity must be between 1 and 99."


class InvalidItemPrice(DomainValidationError):
    default_message = "Item price must be greater than zero."


class CartNotActive(ConflictError):
    default_message = "Cart is not active."
