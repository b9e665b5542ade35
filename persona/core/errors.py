"""Persona error classes.

Every error raised by the library carries a machine-readable code, a
human-readable message, and the HTTP status a caller would typically map
it to. Validation failures also carry an ordered list of field errors
that can be rendered next to form fields.

Collaborator failures (database, hashing, event handlers) are not wrapped
and propagate unchanged.
"""

_PASSWORD_CHANGE_NOT_ALLOWED = (
    "Changing password is not allowed via update_profile. "
    "Use update_password instead"
)


class PersonaError(Exception):
    """Base class for Persona errors.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_TOKEN").
        message: Human-readable error message.
        status_code: HTTP status code a web layer should return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationFailed(PersonaError):
    """Input failed the declared rules or a credential check (400).

    Each entry of ``messages`` is a ``{"field", "validation", "message"}``
    dict, in the order the fields were validated.
    """

    def __init__(self, messages: list[dict]) -> None:
        self.messages = messages
        super().__init__(
            code="VALIDATION_ERROR",
            message="Validation failed",
            status_code=400,
            details=messages,
        )

    @classmethod
    def for_field(cls, field: str, validation: str, message: str) -> "ValidationFailed":
        """Build a failure holding a single field error."""
        return cls([{"field": field, "validation": validation, "message": message}])


class InvalidTokenError(PersonaError):
    """Token does not match any live record of the expected type (400).

    Not retryable with the same token.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_TOKEN",
            message="The token is invalid or expired",
            status_code=400,
        )


class OperationNotAllowedError(PersonaError):
    """Operation called outside its contract (500).

    Programmer error, e.g. passing a password to update_profile. Should not
    be rendered to end users the way validation errors are.
    """

    def __init__(self, message: str = _PASSWORD_CHANGE_NOT_ALLOWED) -> None:
        super().__init__(
            code="OPERATION_NOT_ALLOWED",
            message=message,
            status_code=500,
        )
