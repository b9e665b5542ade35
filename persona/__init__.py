"""Persona: account registration, verification and recovery flows.

    from persona import Persona, create_persona, persona_session
"""

from persona.core.errors import (
    InvalidTokenError,
    OperationNotAllowedError,
    PersonaError,
    ValidationFailed,
)
from persona.core.events import EventBus
from persona.factory import create_persona, persona_session
from persona.services.lifecycle import Persona

__all__ = [
    "EventBus",
    "InvalidTokenError",
    "OperationNotAllowedError",
    "Persona",
    "PersonaError",
    "ValidationFailed",
    "create_persona",
    "persona_session",
]
