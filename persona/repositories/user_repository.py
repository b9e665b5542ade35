"""SQLAlchemy repository for User operations.

Flushes but never commits: the caller's session scope controls
transaction boundaries.
"""

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from persona.models.user import User
from persona.repositories.base import UserRepository


def _column(name: str) -> InstrumentedAttribute:
    if name not in User.column_names() and name != "id":
        msg = f"'{name}' is not a column of {User.__tablename__}"
        raise ValueError(msg)
    return getattr(User, name)


class SqlUserRepository(UserRepository):
    """User repository bound to an AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, fields: dict[str, Any]) -> User:
        """Create a new user.

        Args:
            fields: Column values and extension attributes.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If a unique column already exists.
        """
        user = User()
        user.merge(fields)
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def find_by_uids(self, uids: Sequence[str], value: Any) -> User | None:
        """Fetch the first user whose uid fields match ``value``.

        Args:
            uids: Column names to check with OR semantics.
            value: Identifier entered by the user.

        Returns:
            First matching User by creation time, None otherwise.
        """
        stmt = (
            select(User)
            .where(or_(*(_column(uid) == value for uid in uids)))
            .order_by(User.created_at, User.id)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def save(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        # Pick up server-side onupdate timestamps
        await self.db.refresh(user)
        return user

    async def count(
        self,
        column: str,
        value: Any,
        *,
        exclude_column: str | None = None,
        exclude_value: Any = None,
    ) -> int:
        stmt = select(func.count()).select_from(User).where(_column(column) == value)
        if exclude_column is not None:
            if exclude_column == "id" and isinstance(exclude_value, str):
                # Rule strings carry the id as text
                exclude_value = uuid.UUID(exclude_value)
            stmt = stmt.where(_column(exclude_column) != exclude_value)
        result = await self.db.execute(stmt)
        return int(result.scalar_one())
