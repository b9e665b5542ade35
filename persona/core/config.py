"""Library configuration loaded from environment variables.

Settings for the account model field names, lifecycle states, token
obfuscation, password hashing, and the database connection. Uses
pydantic-settings for validation and .env file support.
"""

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure defaults that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "persona_dev_password"  # nosec B105
_INSECURE_DEFAULT_TOKEN_SECRET = "persona-development-token-secret"  # nosec B105

# Minimum length for TOKEN_SECRET in production (256 bits = 32 bytes)
_MIN_TOKEN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Persona settings loaded from ``PERSONA_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PERSONA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Account model
    # uids: fields that identify a user uniquely. Checked (OR) during login
    # and password recovery, and required + unique on registration.
    uids: list[str] = ["email"]
    email_field: str = "email"
    password_field: str = "password"
    table: str = "users"

    # Account states
    new_account_state: str = "pending"
    verified_account_state: str = "active"

    # strftime pattern used to render the token expiry cutoff
    date_format: str = "%Y-%m-%d %H:%M:%S"

    # Tokens and passwords
    token_secret: SecretStr = SecretStr(_INSECURE_DEFAULT_TOKEN_SECRET)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "persona"
    database_user: str = "persona_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_account_fields(self) -> "Settings":
        """Validate the account field configuration.

        Checks:
        - At least one uid is configured, with no duplicates
        - The email field is one of the uids
        - New and verified account states differ
        """
        if not self.uids:
            msg = "UIDS must contain at least one field name."
            raise ValueError(msg)
        if len(set(self.uids)) != len(self.uids):
            msg = f"UIDS must not contain duplicates. Got: {self.uids}"
            raise ValueError(msg)
        if self.email_field not in self.uids:
            msg = (
                f"EMAIL_FIELD '{self.email_field}' must be one of the "
                f"configured UIDS {self.uids}."
            )
            raise ValueError(msg)
        if self.new_account_state == self.verified_account_state:
            msg = (
                "NEW_ACCOUNT_STATE and VERIFIED_ACCOUNT_STATE must differ. "
                f"Got: '{self.new_account_state}' for both."
            )
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - Database password must not be the default in production
        - TOKEN_SECRET must not be the default and must be >= 32 chars in production
        """
        if self.environment != "production":
            return self

        if self.database_password == _INSECURE_DEFAULT_PASSWORD:
            msg = (
                "Cannot use default database password in production. "
                "Set PERSONA_DATABASE_PASSWORD environment variable to a secure value."
            )
            raise ValueError(msg)

        secret_value = self.token_secret.get_secret_value()
        if secret_value == _INSECURE_DEFAULT_TOKEN_SECRET:
            msg = (
                "Cannot use default token secret in production. "
                'Generate one with: python -c "import secrets; '
                'print(secrets.token_hex(32))"'
            )
            raise ValueError(msg)
        if len(secret_value) < _MIN_TOKEN_SECRET_LENGTH:
            msg = (
                f"PERSONA_TOKEN_SECRET must be at least {_MIN_TOKEN_SECRET_LENGTH} "
                "characters for adequate security."
            )
            raise ValueError(msg)

        return self


settings = Settings()
