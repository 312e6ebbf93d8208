"""
engagehub.models.feature_flag - Feature Flag Models

- FeatureFlag: Global flag definition and default value
- OrganizationFeatureFlag: Per-organization enablement and rollout
- UserFeatureFlagOverride: Per-user override, optionally expiring
- FeatureFlagEvaluation: Evaluation log (development / opt-in only)
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import Base, IntegerIdModel, TimestampedModel


class FeatureFlag(IntegerIdModel, TimestampedModel, Base):
    """
    Flag definition.

    ``default_value`` is stored as text and parsed according to ``flag_type``.

    Example:
        >>> flag = FeatureFlag(
        ...     flag_key="employee_adapter_enabled",
        ...     name="Employee adapter",
        ...     flag_type="boolean",
        ...     default_value="false",
        ... )
    """

    __tablename__ = "feature_flags"

    flag_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    flag_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'boolean'"),
        comment="Value type (boolean, string, number)",
    )
    default_value: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default=text("'false'")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )

    __table_args__ = (
        CheckConstraint(
            "flag_type IN ('boolean', 'string', 'number')",
            name="ck_feature_flags_type",
        ),
    )


class OrganizationFeatureFlag(IntegerIdModel, TimestampedModel, Base):
    """Organization-scoped enablement of a flag with its rollout strategy."""

    __tablename__ = "organization_feature_flags"

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    flag_key: Mapped[str] = mapped_column(String(100), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    rollout_percentage: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    rollout_strategy: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'percentage'"),
        comment="Rollout strategy (all, whitelist, percentage)",
    )
    rollout_config: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    environment: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=text("'production'")
    )
    enabled_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    enabled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "rollout_percentage >= 0 AND rollout_percentage <= 100",
            name="ck_org_feature_flags_percentage",
        ),
        Index("idx_org_feature_flags_key", "organization_id", "flag_key", unique=True),
    )


class UserFeatureFlagOverride(IntegerIdModel, Base):
    """Per-user override of a flag value."""

    __tablename__ = "user_feature_flag_overrides"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    flag_key: Mapped[str] = mapped_column(String(100), nullable=False)
    override_value: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        Index("idx_user_flag_overrides_key", "user_id", "flag_key", unique=True),
    )


class FeatureFlagEvaluation(IntegerIdModel, Base):
    """One logged flag evaluation."""

    __tablename__ = "feature_flag_evaluations"

    flag_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    organization_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    evaluated_value: Mapped[str] = mapped_column(String(255), nullable=False)
    evaluation_reason: Mapped[str] = mapped_column(String(20), nullable=False)
    request_context: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    evaluated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
