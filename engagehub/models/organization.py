"""
engagehub.models.organization - Organization and User Models

- Organization: Customer company
- User: Employee account within an organization
"""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from engagehub.models.base import Base, IntegerIdModel, TimestampedModel


class Organization(IntegerIdModel, TimestampedModel, Base):
    """
    Customer organization.

    Example:
        >>> org = Organization(name="Acme Corporation", domain="acme.com")
    """

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(
        String(200), nullable=False, comment="Organization display name"
    )

    domain: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Primary email domain"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'active'"),
        comment="Organization status (active, suspended)",
    )


class User(IntegerIdModel, TimestampedModel, Base):
    """
    Employee account.

    Deactivation is a soft delete: ``status`` becomes ``inactive`` and the
    reason and time are recorded.

    Example:
        >>> user = User(
        ...     organization_id=org.id,
        ...     username="jchen",
        ...     email="jordan.chen@acme.com",
        ...     name="Jordan",
        ...     surname="Chen",
        ...     department="Sales",
        ... )
    """

    __tablename__ = "users"

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization this user belongs to",
    )

    # Identity
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Position
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    department: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Access
    role_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'employee'"),
        comment="Role (employee, manager, admin, corporate_admin)",
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'active'"),
        comment="Account status (active, inactive)",
    )
    deactivation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "role_type IN ('employee', 'manager', 'admin', 'corporate_admin')",
            name="ck_users_role_type",
        ),
        CheckConstraint("status IN ('active', 'inactive')", name="ck_users_status"),
        Index("idx_users_org_email", "organization_id", "email", unique=True),
        Index("idx_users_org_department", "organization_id", "department"),
    )
