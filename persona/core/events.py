"""Lifecycle events and the in-process event bus.

Event names are the single source of truth for what Persona publishes.
Payloads are frozen dataclasses holding the domain objects involved.

Usage::

    from persona.core.events import USER_CREATED, EventBus

    bus = EventBus()

    async def send_verification(event):
        await mailer.send(event.account.email, event.token)

    bus.on(USER_CREATED, send_verification)
"""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from persona.models.user import User

logger = structlog.get_logger()

USER_CREATED = "user::created"
EMAIL_CHANGED = "email::changed"
PASSWORD_CHANGED = "password::changed"
FORGOT_PASSWORD = "forgot::password"
PASSWORD_RECOVERED = "password::recovered"

KNOWN_EVENTS: frozenset[str] = frozenset(
    {
        USER_CREATED,
        EMAIL_CHANGED,
        PASSWORD_CHANGED,
        FORGOT_PASSWORD,
        PASSWORD_RECOVERED,
    }
)

Handler = Callable[[Any], Awaitable[None] | None]


@dataclass(frozen=True)
class UserCreated:
    """Published after registration, with the email verification token."""

    account: "User"
    token: str


@dataclass(frozen=True)
class EmailChanged:
    """Published after an email change, with a fresh verification token."""

    account: "User"
    old_email: str | None
    token: str


@dataclass(frozen=True)
class PasswordChanged:
    """Published after a password change with the old password."""

    account: "User"


@dataclass(frozen=True)
class ForgotPassword:
    """Published when a password recovery token is issued."""

    account: "User"
    token: str


@dataclass(frozen=True)
class PasswordRecovered:
    """Published after a password is reset through a recovery token."""

    account: "User"


class EventBus:
    """Named-event publisher with sync or async handlers.

    Handlers run in registration order and are awaited one after another.
    A failing handler aborts the publish and its exception propagates to
    the caller; nothing is swallowed.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[Handler]] = defaultdict(list)

    def on(self, event: str, handler: Handler) -> None:
        """Subscribe a handler to an event."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        """Unsubscribe a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listeners(self, event: str) -> list[Handler]:
        """Return a copy of the handlers subscribed to an event."""
        return list(self._handlers.get(event, []))

    async def publish(self, event: str, payload: Any) -> None:
        """Deliver a payload to every handler subscribed to ``event``.

        Args:
            event: Event name, e.g. ``"user::created"``.
            payload: Event payload dataclass.
        """
        handlers = self.listeners(event)
        logger.debug("event_published", event_name=event, handler_count=len(handlers))
        for handler in handlers:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
