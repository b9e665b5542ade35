"""Token value generation and obfuscation.

Stored tokens are never the raw random value: the random string is
encrypted with Fernet so the persisted token (and therefore every lookup
key) is the encrypted form.
"""

import base64
import hashlib
import secrets

from cryptography.fernet import Fernet
from pydantic import SecretStr

# Length of the random value before encryption
_RANDOM_TOKEN_LENGTH = 16


def generate_token_value(length: int = _RANDOM_TOKEN_LENGTH) -> str:
    """Return a cryptographically random URL-safe string of ``length`` chars."""
    return secrets.token_urlsafe(length)[:length]


def _derive_key(secret: str) -> bytes:
    # Fernet requires a 32-byte urlsafe-base64 key
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())


class TokenEncrypter:
    """Symmetric encryption used to shape stored token values."""

    def __init__(self, secret: SecretStr | str) -> None:
        raw = secret.get_secret_value() if isinstance(secret, SecretStr) else secret
        if not raw:
            msg = "Token secret must not be empty"
            raise ValueError(msg)
        self._fernet = Fernet(_derive_key(raw))

    def encrypt(self, value: str) -> str:
        """Encrypt a value into an opaque URL-safe string."""
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, token: str) -> str:
        """Reverse :meth:`encrypt`.

        Raises:
            cryptography.fernet.InvalidToken: If the token was not produced
                with the same secret or has been tampered with.
        """
        return self._fernet.decrypt(token.encode()).decode()
