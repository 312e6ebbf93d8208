"""
engagehub.models.recognition - Recognition Models

- RecognitionSettings: Per-organization recognition program configuration
- Recognition: Peer or manager recognition between two users
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import Base, IntegerIdModel, TimestampedModel


class RecognitionSettings(IntegerIdModel, TimestampedModel, Base):
    """Recognition program configuration, one row per organization."""

    __tablename__ = "recognition_settings"

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    cost_per_point: Mapped[float] = mapped_column(
        Float, nullable=False, server_default=text("0.1")
    )

    peer_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )
    peer_requires_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    peer_points_per_recognition: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("10")
    )
    peer_max_recognitions_per_month: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("5")
    )

    manager_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )
    manager_requires_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )

    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class Recognition(IntegerIdModel, TimestampedModel, Base):
    """
    Recognition from ``giver_id`` to ``recipient_id``.

    Example:
        >>> recognition = Recognition(
        ...     organization_id=org.id,
        ...     giver_id=alice.id,
        ...     recipient_id=bob.id,
        ...     badge_type="teamwork",
        ...     message="Thanks for covering the release!",
        ...     points=10,
        ...     status="approved",
        ... )
    """

    __tablename__ = "recognitions"

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    giver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    badge_type: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'pending'"),
        comment="Approval status (pending, approved, rejected)",
    )

    __table_args__ = (
        CheckConstraint("points >= 1", name="ck_recognitions_points"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_recognitions_status",
        ),
        Index("idx_recognitions_recipient", "recipient_id", "created_at"),
        Index("idx_recognitions_giver", "giver_id", "created_at"),
    )
