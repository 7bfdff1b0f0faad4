"""
Tests for the route-level security declaration.
"""

from starlette.requests import Request

from lexshield.middleware.authenticate import authenticate, extract_token
from lexshield.middleware.firm import firm_filter, owner_only
from lexshield.middleware.secure import secure
from lexshield.middleware.webhook import preserve_raw_body


def dependency_names(dependencies):
    return [dep.dependency.__name__ for dep in dependencies]


class TestSecure:
    def test_default_route(self):
        dependencies = secure()
        assert [dep.dependency for dep in dependencies] == [authenticate, firm_filter]

    def test_full_stack_order(self):
        dependencies = secure(
            owner_only=True,
            permission="cases:full",
            model="Case",
            recent_auth_minutes=5,
        )

        assert dependency_names(dependencies) == [
            "authenticate",
            "firm_filter",
            "owner_only",
            "check_permission",
            "check_resource_access",
            "check_recent_auth",
        ]
        assert dependencies[2].dependency is owner_only

    def test_public_route(self):
        assert secure(auth=False) == []

    def test_webhook_route(self):
        dependencies = secure(webhook_auth="stripe", permission="cases:edit")

        assert dependencies[0].dependency is preserve_raw_body
        assert dependency_names(dependencies) == ["preserve_raw_body", "check_webhook_signature"]


def make_request(headers=None):
    return Request(
        {
            "type": "http",
            "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        }
    )


class TestExtractToken:
    def test_bearer_header(self):
        assert extract_token(make_request({"Authorization": "Bearer abc"})) == "abc"

    def test_cookie(self):
        assert extract_token(make_request({"Cookie": "accessToken=xyz"})) == "xyz"

    def test_header_wins_over_cookie(self):
        request = make_request({"Authorization": "Bearer abc", "Cookie": "accessToken=xyz"})
        assert extract_token(request) == "abc"

    def test_other_scheme_ignored(self):
        assert extract_token(make_request({"Authorization": "Basic dXNlcg=="})) is None
