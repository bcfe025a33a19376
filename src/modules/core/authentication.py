"""JWT authentication that accepts the session cookie or a bearer header.

Browsers on the storefront host send the ``authToken`` cookie; native and
cross-site callers that could not persist the cookie send the same token as
``Authorization: Bearer``.  The cookie is checked first.

Security decisions
------------------
* **Fail Closed**: any decode / validation error returns 401.
* Token verification is delegated to SimpleJWT (signature, expiry, user).
"""

import structlog
from rest_framework_simplejwt.authentication import JWTAuthentication

from modules.core.session import extract_credential

logger = structlog.get_logger(__name__)


class CookieJWTAuthentication(JWTAuthentication):
    """SimpleJWT backend reading the cookie before the Authorization header."""

    def authenticate(self, request):
        """Return ``(user, validated_token)`` or ``None`` (no credentials)."""
        raw_token = extract_credential(request)
        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)
        user = self.get_user(validated_token)
        logger.info("jwt_authenticated", user_id=str(user.pk))
        return (user, validated_token)
