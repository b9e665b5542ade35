"""SQLAlchemy ORM models for Persona.

    from persona.models import Base, Token, User
"""

from persona.models.base import Base, TimestampMixin
from persona.models.token import EMAIL_TOKEN, PASSWORD_TOKEN, Token
from persona.models.user import User

__all__ = [
    "EMAIL_TOKEN",
    "PASSWORD_TOKEN",
    "Base",
    "TimestampMixin",
    "Token",
    "User",
]
