"""SQLAlchemy repository for Token operations.

Tokens are single-use: looked up by (token, type) with a liveness filter
and deleted after redemption.
"""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from persona.models.token import Token
from persona.models.user import User
from persona.repositories.base import TokenRepository


def _live(token_type: str, cutoff: datetime):
    return (
        Token.type == token_type,
        Token.is_revoked.is_(False),
        Token.updated_at >= cutoff,
    )


class SqlTokenRepository(TokenRepository):
    """Token repository bound to an AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_live(
        self, user: User, token_type: str, cutoff: datetime
    ) -> Token | None:
        stmt = (
            select(Token)
            .where(Token.user_id == user.id, *_live(token_type, cutoff))
            .order_by(Token.created_at, Token.id)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_live_by_value(
        self, value: str, token_type: str, cutoff: datetime
    ) -> Token | None:
        """Look up a live token together with its owner.

        Args:
            value: Encrypted token value.
            token_type: Expected token type.
            cutoff: Oldest accepted ``updated_at``.

        Returns:
            Token with ``user`` eagerly loaded, None if nothing matches.
        """
        stmt = (
            select(Token)
            .options(selectinload(Token.user))
            .where(Token.token == value, *_live(token_type, cutoff))
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def create(self, user: User, token_type: str, value: str) -> Token:
        """Store a new token.

        Raises:
            sqlalchemy.exc.IntegrityError: If the token value already exists.
        """
        row = Token(user_id=user.id, type=token_type, token=value)
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return row

    async def delete(self, value: str, token_type: str) -> int:
        stmt = delete(Token).where(Token.token == value, Token.type == token_type)
        result = await self.db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    async def delete_expired(self, cutoff: datetime) -> int:
        stmt = delete(Token).where(Token.updated_at < cutoff)
        result = await self.db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
