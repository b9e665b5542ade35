"""User model - the account whose lifecycle Persona manages.

Known fields are real columns; anything else a caller attaches to the
account (first name, locale, ...) lives in the ``attributes`` JSON column,
so merging arbitrary payloads never touches undeclared columns.
"""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from persona.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from persona.models.token import Token

_DEFAULT_UUID = text("gen_random_uuid()")

# Columns that are never assigned from a payload.
# Security: id and timestamps are server-managed; attributes is only
# written through set_field() for unknown keys.
_PROTECTED_FIELDS: frozenset[str] = frozenset(
    {"id", "created_at", "updated_at", "attributes"}
)


class User(Base, TimestampMixin):
    """User account.

    Attributes:
        id: UUID primary key.
        email: Unique email address.
        username: Optional unique username (usable as a uid).
        password: bcrypt hash. Never plain text once persisted.
        account_status: Lifecycle label (e.g. "pending", "active").
        attributes: Open mapping of extra profile fields.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=_DEFAULT_UUID,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    username: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        server_default="pending",
    )
    attributes: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    # Relationships
    tokens: Mapped[list["Token"]] = relationship(
        "Token",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} account_status={self.account_status!r}>"

    @classmethod
    def column_names(cls) -> frozenset[str]:
        """Return the mapped columns that may be assigned from a payload."""
        return frozenset(
            column.key for column in cls.__table__.columns
        ) - _PROTECTED_FIELDS

    def get_field(self, name: str) -> Any:
        """Read a column value, or an extension attribute for unknown names."""
        if name in self.column_names():
            return getattr(self, name)
        return (self.attributes or {}).get(name)

    def set_field(self, name: str, value: Any) -> None:
        """Write a column value, or an extension attribute for unknown names.

        Raises:
            ValueError: If ``name`` is a protected, server-managed field.
        """
        if name in _PROTECTED_FIELDS:
            msg = f"Field '{name}' cannot be assigned"
            raise ValueError(msg)
        if name in self.column_names():
            setattr(self, name, value)
            return
        # Reassign so SQLAlchemy detects the change on the JSON column
        self.attributes = {**(self.attributes or {}), name: value}

    def merge(self, payload: dict[str, Any]) -> None:
        """Assign every payload key onto the account. Payload wins.

        Raises:
            ValueError: If the payload names a protected field. Nothing is
                assigned in that case.
        """
        protected = sorted(_PROTECTED_FIELDS.intersection(payload))
        if protected:
            msg = f"Fields cannot be assigned: {', '.join(protected)}"
            raise ValueError(msg)
        for name, value in payload.items():
            self.set_field(name, value)
