"""Session credential relay for cart and checkout responses.

The storefront and the API live on different hosts in production, so a
cookie set by the API is not always persisted by the browser.  Every cart and
checkout response therefore re-surfaces the caller's credential twice:

1. as a ``Set-Cookie`` whose attributes depend on ``DEPLOYMENT_MODE``;
2. as ``token`` in the JSON body, for callers that keep it themselves.

The credential is looked up in the cookie first, then in the
``Authorization: Bearer`` header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response

logger = structlog.get_logger(__name__)

CROSS_SITE = "cross-site"
SAME_SITE = "same-site"

# A credential that failed authentication is never re-issued.
_NO_RELAY_STATUSES = {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


@dataclass(frozen=True)
class SessionCookiePolicy:
    """Cookie attributes for one deployment mode."""

    name: str
    secure: bool
    samesite: str
    max_age: int
    domain: Optional[str] = None
    httponly: bool = True
    path: str = "/"

    @classmethod
    def for_mode(
        cls,
        mode: str,
        *,
        name: str,
        max_age: int,
        domain: Optional[str] = None,
        debug: bool = False,
    ) -> SessionCookiePolicy:
        if mode == CROSS_SITE:
            return cls(
                name=name, secure=True, samesite="None", max_age=max_age, domain=domain
            )
        return cls(
            name=name, secure=not debug, samesite="Lax", max_age=max_age, domain=domain
        )

    @classmethod
    def from_settings(cls) -> SessionCookiePolicy:
        return cls.for_mode(
            settings.DEPLOYMENT_MODE,
            name=settings.SESSION_TOKEN_COOKIE_NAME,
            max_age=settings.SESSION_TOKEN_COOKIE_MAX_AGE,
            domain=settings.SESSION_TOKEN_COOKIE_DOMAIN,
            debug=settings.DEBUG,
        )


def extract_credential(request: Any, cookie_name: Optional[str] = None) -> Optional[str]:
    """Return the caller's credential: cookie first, bearer header second."""
    name = cookie_name or settings.SESSION_TOKEN_COOKIE_NAME
    token = request.COOKIES.get(name)
    if token:
        return token

    header = request.META.get("HTTP_AUTHORIZATION", "")
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def relay_token(response: Response, token: str, policy: SessionCookiePolicy) -> Response:
    """Attach ``token`` to ``response`` as a cookie and in the JSON body."""
    response.set_cookie(
        policy.name,
        token,
        max_age=policy.max_age,
        domain=policy.domain,
        path=policy.path,
        secure=policy.secure,
        httponly=policy.httponly,
        samesite=policy.samesite,
    )
    if isinstance(response.data, dict):
        response.data["token"] = token
    return response


class SessionTokenRelayMixin:
    """View mixin that relays the session credential on every response.

    Applied to every cart, discount and checkout view set so the behaviour is
    identical across handlers.
    """

    cookie_policy: Optional[SessionCookiePolicy] = None

    def get_cookie_policy(self) -> SessionCookiePolicy:
        return self.cookie_policy or SessionCookiePolicy.from_settings()

    def finalize_response(
        self, request: Request, response: Response, *args: Any, **kwargs: Any
    ) -> Response:
        response = super().finalize_response(request, response, *args, **kwargs)
        if response.status_code in _NO_RELAY_STATUSES:
            return response

        policy = self.get_cookie_policy()
        token = extract_credential(request, policy.name)
        if token:
            relay_token(response, token, policy)
        else:
            logger.debug("session.no_credential", path=request.path)
        return response
