"""SQLAlchemy base classes and common mixins.

Defines the declarative base and the timestamp mixin shared by the
account and token tables. Token liveness is computed from ``updated_at``,
so both columns are timezone-aware.
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns.

    Attributes:
        created_at: Set by the database on insert.
        updated_at: Set by the database on insert and on each update.
            Drives token expiry.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def touch(self, now: datetime) -> None:
        """Stamp timestamps by hand, for stores without server defaults."""
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now
