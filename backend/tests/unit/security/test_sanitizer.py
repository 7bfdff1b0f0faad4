"""
Tests for operator-injection key stripping.
"""

from lexshield.security.sanitizer import is_prohibited_key, sanitize


class TestIsProhibitedKey:
    def test_dollar_prefix(self):
        assert is_prohibited_key("$where")

    def test_dotted_key(self):
        assert is_prohibited_key("profile.role")

    def test_plain_key(self):
        assert not is_prohibited_key("email")

    def test_dollar_inside_key_is_allowed(self):
        assert not is_prohibited_key("price$")

    def test_non_string_keys(self):
        assert not is_prohibited_key(1)


class TestSanitize:
    def test_strips_where(self):
        result = sanitize({"$where": "sleep(1000)", "title": "ok"})

        assert result.value == {"title": "ok"}
        assert result.removed == ["$where"]
        assert result.modified

    def test_nested_operator(self):
        result = sanitize({"email": {"$ne": None}})
        assert result.value == {"email": {}}
        assert result.removed == ["email.$ne"]

    def test_lists_are_walked(self):
        result = sanitize({"items": [{"ok": 1}, {"$gt": 0}]}, "body")

        assert result.value == {"items": [{"ok": 1}, {}]}
        assert result.removed == ["body.items[1].$gt"]

    def test_clean_input_unmodified(self):
        payload = {"title": "Case", "tags": ["a", "b"], "count": 3}
        result = sanitize(payload)

        assert result.value == payload
        assert not result.modified

    def test_scalars_pass_through(self):
        assert sanitize("plain").value == "plain"
