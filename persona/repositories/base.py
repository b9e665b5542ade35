"""Repository contracts consumed by the Persona services.

Persona never talks to a database directly: it goes through these two
contracts, bound to the account and token entities at construction time.
Adapters:
- user_repository.py / token_repository.py: SQLAlchemy AsyncSession
- memory_repository.py: dict-backed, for tests and local experiments
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from persona.models.token import Token
from persona.models.user import User


class UserRepository(ABC):
    """Storage for user accounts.

    Attributes:
        table: Identifier of the account entity, used by ``unique:`` rules.
    """

    table: str = User.__tablename__
    model: type[User] = User

    @abstractmethod
    async def create(self, fields: dict[str, Any]) -> User:
        """Persist a new user built from ``fields``.

        Unknown keys are stored as extension attributes.
        """

    @abstractmethod
    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key."""

    @abstractmethod
    async def find_by_uids(self, uids: Sequence[str], value: Any) -> User | None:
        """Find the first user where any of ``uids`` equals ``value``.

        Matches are ordered by creation time.
        """

    @abstractmethod
    async def save(self, user: User) -> User:
        """Persist pending changes on ``user``."""

    @abstractmethod
    async def count(
        self,
        column: str,
        value: Any,
        *,
        exclude_column: str | None = None,
        exclude_value: Any = None,
    ) -> int:
        """Count users where ``column == value``.

        Rows where ``exclude_column == exclude_value`` are left out, so an
        account can keep its own value on update.
        """


class TokenRepository(ABC):
    """Storage for tokens, children of exactly one user."""

    @abstractmethod
    async def find_live(
        self, user: User, token_type: str, cutoff: datetime
    ) -> Token | None:
        """Find a non-revoked token of ``token_type`` for ``user``.

        Only tokens updated at or after ``cutoff`` are considered.
        """

    @abstractmethod
    async def find_live_by_value(
        self, value: str, token_type: str, cutoff: datetime
    ) -> Token | None:
        """Find a live token by value and type, with ``token.user`` loaded."""

    @abstractmethod
    async def create(self, user: User, token_type: str, value: str) -> Token:
        """Persist a new token for ``user``."""

    @abstractmethod
    async def delete(self, value: str, token_type: str) -> int:
        """Delete every token matching value and type. Returns rows deleted."""

    @abstractmethod
    async def delete_expired(self, cutoff: datetime) -> int:
        """Delete tokens last updated before ``cutoff``. Returns rows deleted."""
