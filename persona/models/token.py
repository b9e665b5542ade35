"""Token model - single-use email verification and password recovery tokens.

Each token belongs to exactly one user. Tokens are looked up by their
(encrypted) value and type, filtered by liveness, and deleted once
redeemed.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from persona.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from persona.models.user import User

_DEFAULT_UUID = text("gen_random_uuid()")

EMAIL_TOKEN = "email"
PASSWORD_TOKEN = "password"


class Token(Base, TimestampMixin):
    """Single-use token attached to a user.

    Attributes:
        id: UUID primary key.
        user_id: FK to users table.
        token: Encrypted token value (unique).
        type: Token purpose, ``"email"`` or ``"password"`` (extensible).
        is_revoked: Revoked tokens are never considered live.
        created_at: Creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp; drives expiry.
    """

    __tablename__ = "tokens"
    __table_args__ = (Index("idx_tokens_user_type", "user_id", "type"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=_DEFAULT_UUID,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_revoked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="tokens")

    def __repr__(self) -> str:
        return f"<Token id={self.id} type={self.type!r} user_id={self.user_id}>"
