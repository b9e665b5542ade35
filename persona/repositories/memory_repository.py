"""In-memory repositories for testing and local experiments.

Dict-backed implementations of the repository contracts. They mirror the
SQL adapters' semantics, including unique columns and token values, so
service tests run without a database.
"""

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from persona.models.token import Token
from persona.models.user import User
from persona.repositories.base import TokenRepository, UserRepository


def _now() -> datetime:
    return datetime.now(UTC)


class InMemoryUserRepository(UserRepository):
    """User repository holding accounts in a dict keyed by id.

    Attributes:
        users: Stored users by id, in insertion order.
        saves: Number of save() calls, for test assertions.
    """

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.saves = 0

    def _check_unique(self, user: User) -> None:
        for column in ("email", "username"):
            value = getattr(user, column)
            if value is None:
                continue
            for other in self.users.values():
                if other.id != user.id and getattr(other, column) == value:
                    msg = f"Duplicate value for unique column '{column}'"
                    raise ValueError(msg)

    async def create(self, fields: dict[str, Any]) -> User:
        user = User(id=uuid.uuid4(), attributes={})
        user.merge(fields)
        if user.account_status is None:
            user.account_status = "pending"
        self._check_unique(user)
        user.touch(_now())
        self.users[user.id] = user
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        return self.users.get(user_id)

    async def find_by_uids(self, uids: Sequence[str], value: Any) -> User | None:
        for user in self.users.values():
            if any(user.get_field(uid) == value for uid in uids):
                return user
        return None

    async def save(self, user: User) -> User:
        self._check_unique(user)
        user.touch(_now())
        self.users[user.id] = user
        self.saves += 1
        return user

    async def count(
        self,
        column: str,
        value: Any,
        *,
        exclude_column: str | None = None,
        exclude_value: Any = None,
    ) -> int:
        matches = [
            user
            for user in self.users.values()
            if getattr(user, column) == value
            and (
                exclude_column is None
                or str(getattr(user, exclude_column)) != str(exclude_value)
            )
        ]
        return len(matches)


class InMemoryTokenRepository(TokenRepository):
    """Token repository holding tokens in a list.

    Attributes:
        tokens: Stored tokens in creation order.
    """

    def __init__(self) -> None:
        self.tokens: list[Token] = []

    @staticmethod
    def _is_live(row: Token, token_type: str, cutoff: datetime) -> bool:
        return (
            row.type == token_type
            and not row.is_revoked
            and row.updated_at >= cutoff
        )

    def for_user(self, user: User) -> list[Token]:
        """Return every stored token owned by ``user``."""
        return [row for row in self.tokens if row.user_id == user.id]

    async def find_live(
        self, user: User, token_type: str, cutoff: datetime
    ) -> Token | None:
        for row in self.tokens:
            if row.user_id == user.id and self._is_live(row, token_type, cutoff):
                return row
        return None

    async def find_live_by_value(
        self, value: str, token_type: str, cutoff: datetime
    ) -> Token | None:
        for row in self.tokens:
            if row.token == value and self._is_live(row, token_type, cutoff):
                return row
        return None

    async def create(self, user: User, token_type: str, value: str) -> Token:
        if any(row.token == value for row in self.tokens):
            msg = "Duplicate token value"
            raise ValueError(msg)
        row = Token(
            id=uuid.uuid4(),
            user_id=user.id,
            type=token_type,
            token=value,
            is_revoked=False,
        )
        row.touch(_now())
        row.user = user
        self.tokens.append(row)
        return row

    async def delete(self, value: str, token_type: str) -> int:
        before = len(self.tokens)
        self.tokens = [
            row
            for row in self.tokens
            if not (row.token == value and row.type == token_type)
        ]
        return before - len(self.tokens)

    async def delete_expired(self, cutoff: datetime) -> int:
        before = len(self.tokens)
        self.tokens = [row for row in self.tokens if row.updated_at >= cutoff]
        return before - len(self.tokens)
