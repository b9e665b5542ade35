"""Persona services."""

from persona.services.credentials import CredentialVerifier
from persona.services.lifecycle import Persona
from persona.services.tokens import TOKEN_LIFETIME, TokenStore

__all__ = ["TOKEN_LIFETIME", "CredentialVerifier", "Persona", "TokenStore"]
