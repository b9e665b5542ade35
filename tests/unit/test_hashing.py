"""Tests for bcrypt password hashing."""

import pytest

from persona.core.hashing import BcryptHasher


@pytest.fixture
def hasher() -> BcryptHasher:
    return BcryptHasher(rounds=4)


class TestBcryptHasher:
    """Test BcryptHasher.make() and verify()."""

    async def test_hash_is_not_plain_text(self, hasher):
        hashed = await hasher.make("secret")
        assert hashed != "secret"
        assert hashed.startswith("$2b$04$")

    async def test_hashes_are_salted(self, hasher):
        assert await hasher.make("secret") != await hasher.make("secret")

    async def test_verify_matches(self, hasher):
        hashed = await hasher.make("secret")
        assert await hasher.verify("secret", hashed) is True

    async def test_verify_rejects_wrong_password(self, hasher):
        hashed = await hasher.make("secret")
        assert await hasher.verify("Secret", hashed) is False

    @pytest.mark.parametrize("plain,hashed", [("", "$2b$04$x"), ("secret", None), ("secret", "")])
    async def test_verify_rejects_missing_input(self, hasher, plain, hashed):
        assert await hasher.verify(plain, hashed) is False

    async def test_verify_rejects_malformed_hash(self, hasher):
        assert await hasher.verify("secret", "not-a-bcrypt-hash") is False
