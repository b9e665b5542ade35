"""Rule-based validation engine."""

from persona.validation.presence import PresenceVerifier
from persona.validation.validator import Validation, Validator

__all__ = ["PresenceVerifier", "Validation", "Validator"]
