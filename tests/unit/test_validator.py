"""Tests for the rule-based validator, rules and message templates."""

import pytest

from persona.validation.messages import DEFAULT_TEMPLATE, interpolate, resolve_message
from persona.validation.presence import PresenceVerifier
from persona.validation.rules import Rule, is_empty, parse_rules
from persona.validation.validator import Validator


@pytest.fixture
def validator(users) -> Validator:
    return Validator(PresenceVerifier.for_repository(users))


class TestParseRules:
    """Test parse_rules()."""

    def test_parses_names_and_arguments(self):
        assert parse_rules("required|email|unique:users,email,id,42") == [
            Rule("required"),
            Rule("email"),
            Rule("unique", ("users", "email", "id", "42")),
        ]

    def test_ignores_blank_segments(self):
        assert parse_rules(" required || confirmed ") == [
            Rule("required"),
            Rule("confirmed"),
        ]


class TestIsEmpty:
    """Test is_empty()."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, ()])
    def test_empty_values(self, value):
        assert is_empty(value) is True

    @pytest.mark.parametrize("value", ["a", 0, False, [0]])
    def test_non_empty_values(self, value):
        assert is_empty(value) is False


class TestMessages:
    """Test message interpolation and lookup."""

    def test_interpolates_placeholders(self):
        assert (
            interpolate(DEFAULT_TEMPLATE, {"validation": "required", "field": "email"})
            == "required validation failed on email"
        )

    def test_unknown_placeholder_renders_empty(self):
        assert interpolate("[{{ missing }}]", {}) == "[]"

    def test_tight_placeholders(self):
        assert interpolate("{{field}}", {"field": "email"}) == "email"

    def test_resolve_prefers_custom_message(self):
        assert (
            resolve_message({"uid.exists": "No {{ value }}"}, "uid.exists", {"value": "x"}, "d")
            == "No x"
        )

    def test_resolve_falls_back_to_default(self):
        assert resolve_message({}, "uid.exists", {}, "default") == "default"


class TestValidateAll:
    """Test Validator.validate_all()."""

    async def test_passes(self, validator):
        validation = await validator.validate_all(
            {"email": "foo@example.com"}, {"email": "required|email"}
        )
        assert validation.passes()
        assert not validation.fails()
        assert validation.messages() == []

    async def test_errors_follow_rule_order(self, validator):
        validation = await validator.validate_all(
            {}, {"password": "required", "email": "required"}
        )
        assert [e["field"] for e in validation.messages()] == ["password", "email"]

    async def test_stops_at_first_failure_per_field(self, validator):
        validation = await validator.validate_all(
            {"email": "nope"}, {"email": "email|unique:users,email"}
        )
        assert validation.messages() == [
            {
                "message": "email validation failed on email",
                "field": "email",
                "validation": "email",
            }
        ]

    async def test_optional_rules_skip_empty_values(self, validator):
        validation = await validator.validate_all({"email": ""}, {"email": "email"})
        assert validation.passes()

    async def test_confirmed(self, validator):
        rules = {"password": "confirmed"}
        ok = await validator.validate_all(
            {"password": "a", "password_confirmation": "a"}, rules
        )
        bad = await validator.validate_all({"password": "a"}, rules)
        assert ok.passes()
        assert bad.messages()[0]["validation"] == "confirmed"

    async def test_field_specific_message_wins(self, validator):
        validation = await validator.validate_all(
            {},
            {"email": "required"},
            {"required": "{{ field }} is needed", "email.required": "Email please"},
        )
        assert validation.messages()[0]["message"] == "Email please"

    async def test_rule_message_applies_to_all_fields(self, validator):
        validation = await validator.validate_all(
            {}, {"email": "required"}, {"required": "{{ field }} is needed"}
        )
        assert validation.messages()[0]["message"] == "email is needed"

    async def test_unknown_rule(self, validator):
        with pytest.raises(ValueError, match="Unknown validation rule: alpha"):
            await validator.validate_all({"name": "x"}, {"name": "alpha"})


class TestUniqueRule:
    """Test the unique rule against the presence verifier."""

    async def test_fails_when_value_exists(self, validator, users):
        await users.create({"email": "foo@example.com"})

        validation = await validator.validate_all(
            {"email": "foo@example.com"}, {"email": "unique:users,email"}
        )

        assert validation.messages()[0]["validation"] == "unique"

    async def test_column_defaults_to_field(self, validator, users):
        await users.create({"email": "foo@example.com"})

        validation = await validator.validate_all(
            {"email": "foo@example.com"}, {"email": "unique:users"}
        )

        assert validation.fails()

    async def test_excluded_row_is_ignored(self, validator, users):
        user = await users.create({"email": "foo@example.com"})

        validation = await validator.validate_all(
            {"email": "foo@example.com"},
            {"email": f"unique:users,email,id,{user.id}"},
        )

        assert validation.passes()

    async def test_unknown_table(self, validator):
        with pytest.raises(ValueError, match="No repository registered"):
            await validator.validate_all({"email": "x"}, {"email": "unique:accounts"})

    async def test_repository_renamed_after_build(self, validator, users):
        users.table = "accounts"
        await users.create({"email": "foo@example.com"})

        validation = await validator.validate_all(
            {"email": "foo@example.com"}, {"email": "unique:accounts,email"}
        )

        assert validation.messages()[0]["validation"] == "unique"

    async def test_requires_presence_verifier(self):
        with pytest.raises(ValueError, match="presence verifier"):
            await Validator().validate_all({"email": "x"}, {"email": "unique:users"})
