"""Tests for token value generation and encryption."""

import pytest
from cryptography.fernet import InvalidToken
from pydantic import SecretStr

from persona.core.encryption import TokenEncrypter, generate_token_value

_SECRET = "test-token-secret-that-is-at-least-32-characters"  # nosec B105


class TestGenerateTokenValue:
    """Test generate_token_value()."""

    def test_default_length(self):
        assert len(generate_token_value()) == 16

    def test_custom_length(self):
        assert len(generate_token_value(40)) == 40

    def test_values_are_random(self):
        assert len({generate_token_value() for _ in range(20)}) == 20


class TestTokenEncrypter:
    """Test TokenEncrypter."""

    def test_decrypt_reverses_encrypt(self):
        encrypter = TokenEncrypter(_SECRET)
        assert encrypter.decrypt(encrypter.encrypt("abc")) == "abc"

    def test_ciphertext_hides_value(self):
        assert "abc" not in TokenEncrypter(_SECRET).encrypt("abc")

    def test_accepts_secret_str(self):
        encrypter = TokenEncrypter(SecretStr(_SECRET))
        assert TokenEncrypter(_SECRET).decrypt(encrypter.encrypt("abc")) == "abc"

    def test_other_secret_cannot_decrypt(self):
        token = TokenEncrypter(_SECRET).encrypt("abc")
        with pytest.raises(InvalidToken):
            TokenEncrypter("another-secret").decrypt(token)

    @pytest.mark.parametrize("secret", ["", SecretStr("")])
    def test_rejects_empty_secret(self, secret):
        with pytest.raises(ValueError, match="must not be empty"):
            TokenEncrypter(secret)
