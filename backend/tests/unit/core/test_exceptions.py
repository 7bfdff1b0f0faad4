"""
Tests for the exception hierarchy and its error envelope.

WHY: Clients branch on ``code`` and show ``message`` or ``messageAr``
depending on locale, so every exception must render both messages and
never leak context that was not marked public.
"""

import json

import pytest

from lexshield.core.config import settings
from lexshield.core.exception_handlers import error_response
from lexshield.core.exceptions import (
    AppException,
    AuthRequired,
    EmailVerificationRequired,
    EndpointGone,
    EndpointMoved,
    FirmAccessRequired,
    PermissionDenied,
    ReauthenticationRequired,
    SessionIdleTimeout,
    WebhookSignatureError,
)


class TestEnvelope:
    @pytest.mark.parametrize(
        "exc_class,status_code,code",
        [
            (AuthRequired, 401, "AUTH_REQUIRED"),
            (SessionIdleTimeout, 401, "SESSION_IDLE_TIMEOUT"),
            (ReauthenticationRequired, 401, "REAUTHENTICATION_REQUIRED"),
            (WebhookSignatureError, 401, "INVALID_WEBHOOK_SIGNATURE"),
            (EmailVerificationRequired, 403, "EMAIL_VERIFICATION_REQUIRED"),
            (FirmAccessRequired, 403, "FIRM_ACCESS_REQUIRED"),
            (PermissionDenied, 403, "PERMISSION_DENIED"),
            (EndpointGone, 410, "ENDPOINT_GONE"),
            (EndpointMoved, 301, "ENDPOINT_MOVED"),
        ],
    )
    def test_status_and_code(self, exc_class, status_code, code):
        exc = exc_class()
        body = exc.to_dict()

        assert exc.status_code == status_code
        assert body["error"] is True
        assert body["code"] == code
        assert body["message"]
        assert body["messageAr"]

    def test_custom_message_keeps_arabic_default(self):
        body = AuthRequired(message="Log in first").to_dict()

        assert body["message"] == "Log in first"
        assert body["messageAr"] == AuthRequired.default_message_ar

    def test_status_override(self):
        assert AppException(status_code=418).status_code == 418


class TestDetails:
    def test_only_public_fields_are_exposed(self):
        exc = PermissionDenied(module="cases", requiredLevel="full", user_id=7)

        assert exc.to_dict()["details"] == {"module": "cases", "requiredLevel": "full"}
        assert exc.context["user_id"] == 7

    def test_no_details_key_without_public_context(self):
        assert "details" not in AuthRequired(user_id=7).to_dict()

    def test_sensitive_names_never_exposed(self):
        class LeakyError(AppException):
            public_fields = frozenset({"token", "field"})

        body = LeakyError(token="abc", field="x").to_dict()
        assert body["details"] == {"field": "x"}


class TestErrorResponse:
    def test_moved_sets_location(self):
        response = error_response(EndpointMoved(location="/api/v2/matters"))

        assert response.status_code == 301
        assert response.headers["location"] == "/api/v2/matters"
        assert json.loads(response.body)["details"] == {"location": "/api/v2/matters"}

    def test_timeout_clears_session_cookie(self):
        response = error_response(SessionIdleTimeout())

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{settings.ACCESS_TOKEN_COOKIE}=")
        assert "Max-Age=0" in set_cookie

    def test_regular_error_keeps_cookie(self):
        assert "set-cookie" not in error_response(AuthRequired()).headers
