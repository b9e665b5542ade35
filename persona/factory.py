"""Persona wiring over an AsyncSession.

Builds a Persona bound to the SQLAlchemy repositories, the bcrypt hasher
and the Fernet token encrypter, configured from settings.

Usage::

    async with persona_session(events=bus) as persona:
        user = await persona.register(payload)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from persona.core import database
from persona.core.config import Settings, settings
from persona.core.encryption import TokenEncrypter
from persona.core.events import EventBus
from persona.core.hashing import BcryptHasher
from persona.repositories.token_repository import SqlTokenRepository
from persona.repositories.user_repository import SqlUserRepository
from persona.services.lifecycle import MessageProvider, Persona
from persona.validation.presence import PresenceVerifier
from persona.validation.validator import Validator


def create_persona(
    db: AsyncSession,
    *,
    events: EventBus | None = None,
    validation_messages: MessageProvider | None = None,
    config: Settings | None = None,
) -> Persona:
    """Create a Persona for one database session.

    Args:
        db: Session the repositories run on. The caller commits.
        events: Event bus to publish on. A private bus is created if omitted.
        validation_messages: Custom message provider keyed by action.
        config: Settings override. Defaults to the module-level settings.

    Returns:
        Configured Persona.
    """
    config = config or settings
    users = SqlUserRepository(db)
    return Persona(
        users,
        SqlTokenRepository(db),
        validator=Validator(PresenceVerifier.for_repository(users)),
        hasher=BcryptHasher(config.bcrypt_rounds),
        encrypter=TokenEncrypter(config.token_secret),
        events=events or EventBus(),
        config=config,
        validation_messages=validation_messages,
    )


@asynccontextmanager
async def persona_session(**kwargs: Any) -> AsyncIterator[Persona]:
    """Yield a Persona running inside its own transaction.

    Everything done through the yielded Persona is committed together when
    the block exits cleanly, and rolled back when it raises.

    Args:
        **kwargs: Passed to :func:`create_persona`.
    """
    async with database.session_scope() as db:
        yield create_persona(db, **kwargs)
