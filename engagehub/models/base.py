"""
engagehub.models.base - Base SQLAlchemy Models

Provides base classes with common functionality:
- Base: SQLAlchemy declarative base
- TimestampedModel: Automatic created_at/updated_at timestamps
- IntegerIdModel: Serial integer primary key
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base.

    All models inherit from this class.
    """

    pass


class IntegerIdModel:
    """Mixin providing a serial integer primary key."""

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Unique identifier",
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"


class TimestampedModel:
    """
    Mixin for models with automatic timestamps.

    Provides:
    - created_at: Set on insert
    - updated_at: Set on insert, updated on every update
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
        comment="When this record was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
        onupdate=utcnow,
        comment="When this record was last updated (UTC)",
    )
