"""Repository contracts and adapters."""

from persona.repositories.base import TokenRepository, UserRepository
from persona.repositories.memory_repository import (
    InMemoryTokenRepository,
    InMemoryUserRepository,
)
from persona.repositories.token_repository import SqlTokenRepository
from persona.repositories.user_repository import SqlUserRepository

__all__ = [
    "InMemoryTokenRepository",
    "InMemoryUserRepository",
    "SqlTokenRepository",
    "SqlUserRepository",
    "TokenRepository",
    "UserRepository",
]
