"""Tests for User field access and payload merging."""

import uuid
from datetime import UTC, datetime

import pytest

from persona.models.user import User


@pytest.fixture
def user() -> User:
    return User(id=uuid.uuid4(), email="foo@example.com", attributes={})


class TestColumnNames:
    """Test User.column_names()."""

    def test_lists_assignable_columns(self):
        assert User.column_names() == {
            "email",
            "username",
            "password",
            "account_status",
        }


class TestFieldAccess:
    """Test User.get_field() and set_field()."""

    def test_column_round_trip(self, user):
        user.set_field("username", "foo")
        assert user.username == "foo"
        assert user.get_field("username") == "foo"

    def test_unknown_field_goes_to_attributes(self, user):
        user.set_field("locale", "en")
        assert user.attributes == {"locale": "en"}
        assert user.get_field("locale") == "en"

    def test_missing_attribute_is_none(self, user):
        assert user.get_field("locale") is None

    def test_attributes_dict_is_replaced_on_write(self, user):
        before = user.attributes
        user.set_field("locale", "en")
        assert user.attributes is not before

    @pytest.mark.parametrize("name", ["id", "created_at", "updated_at", "attributes"])
    def test_protected_fields(self, user, name):
        with pytest.raises(ValueError, match="cannot be assigned"):
            user.set_field(name, "x")


class TestMerge:
    """Test User.merge()."""

    def test_payload_wins(self, user):
        user.merge({"email": "new@example.com", "firstname": "Foo"})
        assert user.email == "new@example.com"
        assert user.get_field("firstname") == "Foo"

    def test_protected_field_aborts_whole_merge(self, user):
        with pytest.raises(ValueError, match="id"):
            user.merge({"username": "foo", "id": uuid.uuid4()})
        assert user.username is None


class TestTouch:
    """Test TimestampMixin.touch() on a User."""

    def test_sets_both_timestamps_first_time(self, user):
        now = datetime(2024, 1, 1, tzinfo=UTC)
        user.touch(now)
        assert user.created_at == now
        assert user.updated_at == now

    def test_keeps_created_at(self, user):
        first = datetime(2024, 1, 1, tzinfo=UTC)
        later = datetime(2024, 1, 2, tzinfo=UTC)
        user.touch(first)
        user.touch(later)
        assert user.created_at == first
        assert user.updated_at == later
