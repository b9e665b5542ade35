"""Shared fixtures.

Service tests run on the in-memory repositories and need no database.
SQL repository tests use ``db_session`` and are skipped when PostgreSQL
is not reachable.
"""

import socket
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from persona.core.config import Settings, settings
from persona.core.encryption import TokenEncrypter
from persona.core.events import EventBus
from persona.core.hashing import BcryptHasher
from persona.models.base import Base
from persona.repositories.memory_repository import (
    InMemoryTokenRepository,
    InMemoryUserRepository,
)
from persona.services.lifecycle import Persona
from persona.validation.presence import PresenceVerifier
from persona.validation.validator import Validator

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Low cost factor for fast tests
TEST_BCRYPT_ROUNDS = 4

# Security: This is a test-only secret.
TEST_TOKEN_SECRET = "test-token-secret-that-is-at-least-32-characters"  # nosec B105


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start a database to run repository tests."
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available.
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


class RecordingEventBus(EventBus):
    """Event bus that remembers every published event.

    Attributes:
        published: ``(event, payload)`` tuples in publish order.
    """

    def __init__(self) -> None:
        super().__init__()
        self.published: list[tuple[str, Any]] = []

    async def publish(self, event: str, payload: Any) -> None:
        self.published.append((event, payload))
        await super().publish(event, payload)

    def names(self) -> list[str]:
        """Return published event names in order."""
        return [event for event, _ in self.published]

    def recent(self) -> tuple[str, Any]:
        """Return the most recent ``(event, payload)``."""
        assert self.published, "no event was published"
        return self.published[-1]


@pytest.fixture
def config() -> Settings:
    """Default single-uid configuration."""
    return Settings(token_secret=TEST_TOKEN_SECRET, bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def hasher() -> BcryptHasher:
    return BcryptHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def encrypter() -> TokenEncrypter:
    return TokenEncrypter(TEST_TOKEN_SECRET)


@pytest.fixture
def events() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def tokens() -> InMemoryTokenRepository:
    return InMemoryTokenRepository()


@pytest.fixture
def make_persona(users, tokens, hasher, encrypter, events, config):
    """Factory building a Persona over the in-memory repositories.

    Keyword arguments override the Settings fields; ``validation_messages``
    is passed through to Persona.
    """

    def _make(validation_messages=None, **overrides: Any) -> Persona:
        cfg = config.model_copy(update=overrides) if overrides else config
        return Persona(
            users,
            tokens,
            validator=Validator(PresenceVerifier.for_repository(users)),
            hasher=hasher,
            encrypter=encrypter,
            events=events,
            config=cfg,
            validation_messages=validation_messages,
        )

    return _make


@pytest.fixture
def persona(make_persona) -> Persona:
    """Persona with the default configuration."""
    return make_persona()
