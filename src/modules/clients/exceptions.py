"""Client domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError, NotFoundError


class ClientNotFound(NotFoundError):
    default_message = "Client not found."


class GrantNotFound(NotFoundError):
    default_message = "Discount code not found for this client."


class GrantAlreadyUsed(ConflictError):
    """The grant was already consumed by a different sale."""

    default_message = "Discount code has already been used in another order."
