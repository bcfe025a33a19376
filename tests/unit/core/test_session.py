"""Unit tests for the session credential relay.

Covers:
- SessionCookiePolicy per deployment mode
- extract_credential lookup order
- relay_token on dict and non-dict bodies
"""

import pytest
from django.test import RequestFactory
from rest_framework.response import Response

from modules.core.session import (
    CROSS_SITE,
    SAME_SITE,
    SessionCookiePolicy,
    extract_credential,
    relay_token,
)

pytestmark = pytest.mark.unit


@pytest.fixture()
def rf():
    return RequestFactory()


class TestSessionCookiePolicy:
    def test_cross_site_is_secure_and_samesite_none(self):
        policy = SessionCookiePolicy.for_mode(CROSS_SITE, name="authToken", max_age=60)
        assert policy.secure is True
        assert policy.samesite == "None"
        assert policy.httponly is True

    def test_cross_site_stays_secure_in_debug(self):
        policy = SessionCookiePolicy.for_mode(
            CROSS_SITE, name="authToken", max_age=60, debug=True
        )
        assert policy.secure is True

    def test_same_site_is_lax(self):
        policy = SessionCookiePolicy.for_mode(SAME_SITE, name="authToken", max_age=60)
        assert policy.samesite == "Lax"
        assert policy.secure is True

    def test_same_site_debug_allows_plain_http(self):
        policy = SessionCookiePolicy.for_mode(
            SAME_SITE, name="authToken", max_age=60, debug=True
        )
        assert policy.secure is False

    def test_from_settings(self, settings):
        settings.DEPLOYMENT_MODE = CROSS_SITE
        settings.SESSION_TOKEN_COOKIE_NAME = "shopToken"
        settings.SESSION_TOKEN_COOKIE_MAX_AGE = 300
        settings.SESSION_TOKEN_COOKIE_DOMAIN = ".example.com"

        policy = SessionCookiePolicy.from_settings()

        assert policy.name == "shopToken"
        assert policy.max_age == 300
        assert policy.domain == ".example.com"
        assert policy.samesite == "None"


class TestExtractCredential:
    def test_cookie_wins_over_header(self, rf):
        request = rf.get("/", HTTP_AUTHORIZATION="Bearer from-header")
        request.COOKIES["authToken"] = "from-cookie"

        assert extract_credential(request, "authToken") == "from-cookie"

    def test_falls_back_to_bearer_header(self, rf):
        request = rf.get("/", HTTP_AUTHORIZATION="Bearer from-header")
        assert extract_credential(request, "authToken") == "from-header"

    @pytest.mark.parametrize("header", ["", "Token abc", "Bearer", "Bearer a b"])
    def test_no_usable_credential(self, rf, header):
        request = rf.get("/", HTTP_AUTHORIZATION=header)
        assert extract_credential(request, "authToken") is None


class TestRelayToken:
    def test_sets_cookie_and_body_token(self):
        policy = SessionCookiePolicy.for_mode(CROSS_SITE, name="authToken", max_age=120)
        response = Response({"success": True, "message": "ok", "data": None})

        relay_token(response, "jwt-value", policy)

        cookie = response.cookies["authToken"]
        assert cookie.value == "jwt-value"
        assert cookie["samesite"] == "None"
        assert cookie["secure"] is True
        assert cookie["httponly"] is True
        assert cookie["max-age"] == 120
        assert response.data["token"] == "jwt-value"

    def test_non_dict_body_only_gets_cookie(self):
        policy = SessionCookiePolicy.for_mode(SAME_SITE, name="authToken", max_age=120)
        response = Response(["a", "b"])

        relay_token(response, "jwt-value", policy)

        assert response.cookies["authToken"].value == "jwt-value"
        assert response.data == ["a", "b"]
