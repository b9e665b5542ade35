"""Password comparison with structured failures."""

from collections.abc import Mapping

from persona.core.errors import ValidationFailed
from persona.core.hashing import BcryptHasher
from persona.validation.messages import resolve_message

_DEFAULT_MISMATCH_MESSAGE = "Invalid password"  # nosec B105


class CredentialVerifier:
    """Compares a candidate password with a stored hash."""

    def __init__(self, hasher: BcryptHasher) -> None:
        self.hasher = hasher

    async def verify(
        self,
        candidate: str | None,
        stored_hash: str | None,
        field: str,
        messages: Mapping[str, str] | None = None,
    ) -> None:
        """Raise when ``candidate`` does not match ``stored_hash``.

        Args:
            candidate: Plain-text password entered by the user.
            stored_hash: Hash stored on the account.
            field: Field the error is reported on.
            messages: Custom messages; ``"<field>.mis_match"`` overrides the
                default "Invalid password".

        Raises:
            ValidationFailed: With a single ``mis_match`` error on ``field``.
        """
        if await self.hasher.verify(candidate or "", stored_hash):
            return

        data = {"field": field, "validation": "mis_match", "value": candidate}
        message = resolve_message(
            messages or {}, f"{field}.mis_match", data, _DEFAULT_MISMATCH_MESSAGE
        )
        raise ValidationFailed.for_field(field, "mis_match", message)
