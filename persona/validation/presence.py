"""Database presence checks for the ``unique`` rule."""

from collections.abc import Iterable
from typing import Any

from persona.repositories.base import UserRepository


class PresenceVerifier:
    """Answers "how many rows have this value" for rule-referenced tables.

    Tables are matched against each repository's ``table`` at check time,
    so a repository renamed after the verifier is built is still found.

    Args:
        repositories: Repositories serving the tables named in rules.
    """

    def __init__(self, repositories: Iterable[UserRepository]) -> None:
        self._repositories = list(repositories)

    @classmethod
    def for_repository(cls, repository: UserRepository) -> "PresenceVerifier":
        """Build a verifier serving a single repository."""
        return cls([repository])

    async def count(
        self,
        table: str,
        column: str,
        value: Any,
        *,
        exclude_column: str | None = None,
        exclude_value: Any = None,
    ) -> int:
        """Count rows in ``table`` with ``column == value``.

        Raises:
            ValueError: If no repository serves ``table``.
        """
        repository = next(
            (repo for repo in self._repositories if repo.table == table), None
        )
        if repository is None:
            msg = f"No repository registered for table '{table}'"
            raise ValueError(msg)
        return await repository.count(
            column,
            value,
            exclude_column=exclude_column,
            exclude_value=exclude_value,
        )
