"""Single-use token lifecycle: generation, lookup, and removal.

A token is live when it is not revoked and was updated within the last
24 hours. Generation is idempotent inside that window: asking twice for
the same account and type returns the same value.

Concurrent generate_token() calls for the same account and type can both
miss the lookup and create two live tokens. The unique constraint on the
token value prevents duplicate values, not duplicate live tokens.
"""

from datetime import UTC, datetime, timedelta

import structlog

from persona.core.encryption import TokenEncrypter, generate_token_value
from persona.models.token import Token
from persona.models.user import User
from persona.repositories.base import TokenRepository

logger = structlog.get_logger()

# Fixed liveness window for every token type
TOKEN_LIFETIME = timedelta(hours=24)

# Every field distinct and unambiguous, hour past noon
_REFERENCE_MOMENT = datetime(2001, 11, 22, 15, 44, 33, 123456)


def _truncations(moment: datetime) -> list[datetime]:
    """Return ``moment`` cut down to each precision a date format may keep."""
    return [
        moment,
        moment.replace(microsecond=0),
        moment.replace(second=0, microsecond=0),
        moment.replace(minute=0, second=0, microsecond=0),
        moment.replace(hour=0, minute=0, second=0, microsecond=0),
        moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0),
        moment.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0),
    ]


def check_date_format(date_format: str) -> None:
    """Check that ``date_format`` reads back what it writes.

    A format may drop trailing precision (seconds, time of day) but must
    not lose or distort anything it keeps: ``%I`` without ``%p`` reads
    15:00 back as 03:00.

    Raises:
        ValueError: If rendering and re-parsing a timestamp does not yield
            that timestamp truncated to some precision.
    """
    try:
        parsed = datetime.strptime(_REFERENCE_MOMENT.strftime(date_format), date_format)
    except ValueError as exc:
        msg = f"Date format {date_format!r} cannot be parsed back: {exc}"
        raise ValueError(msg) from exc
    if parsed not in _truncations(_REFERENCE_MOMENT):
        msg = (
            f"Date format {date_format!r} does not round-trip: "
            f"{_REFERENCE_MOMENT} reads back as {parsed}"
        )
        raise ValueError(msg)


class TokenStore:
    """Mints, resolves and deletes tokens for user accounts.

    Args:
        repository: Token storage.
        encrypter: Shapes the random value into the stored token.
        date_format: strftime pattern; the expiry cutoff is rendered through
            it, so it is truncated to the precision the format keeps.

    Raises:
        ValueError: If ``date_format`` does not round-trip (see
            :func:`check_date_format`).
    """

    def __init__(
        self,
        repository: TokenRepository,
        encrypter: TokenEncrypter,
        date_format: str,
    ) -> None:
        check_date_format(date_format)
        self.repository = repository
        self.encrypter = encrypter
        self.date_format = date_format

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Return the oldest ``updated_at`` a live token may have."""
        oldest = (now or datetime.now(UTC)) - TOKEN_LIFETIME
        rendered = oldest.strftime(self.date_format)
        return datetime.strptime(rendered, self.date_format).replace(tzinfo=UTC)

    async def generate_token(self, account: User, token_type: str) -> str:
        """Return the account's live token of ``token_type``, creating one if needed.

        Args:
            account: Token owner.
            token_type: Token purpose, e.g. ``"email"``.

        Returns:
            Stored (encrypted) token value.
        """
        existing = await self.repository.find_live(account, token_type, self.cutoff())
        if existing is not None:
            logger.info("token_reused", user_id=str(account.id), token_type=token_type)
            return existing.token

        value = self.encrypter.encrypt(generate_token_value())
        await self.repository.create(account, token_type, value)
        logger.info("token_generated", user_id=str(account.id), token_type=token_type)
        return value

    async def get_token(self, value: str, token_type: str) -> Token | None:
        """Resolve a live token with its owner.

        Returns:
            Token with ``user`` loaded, or None when nothing live matches or
            the owner cannot be resolved.
        """
        if not value:
            return None
        row = await self.repository.find_live_by_value(value, token_type, self.cutoff())
        if row is None or row.user is None:
            return None
        return row

    async def remove_token(self, value: str, token_type: str) -> None:
        """Delete tokens matching value and type. No-op when nothing matches."""
        await self.repository.delete(value, token_type)

    async def purge_expired(self) -> int:
        """Delete every token past the liveness window.

        Returns:
            Number of deleted tokens.
        """
        deleted = await self.repository.delete_expired(self.cutoff())
        logger.info("expired_tokens_purged", count=deleted)
        return deleted
