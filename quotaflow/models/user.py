"""
User and AE profile models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import BaseModel

if TYPE_CHECKING:
    from quotaflow.models.attio import AttioWorkspaceMember
    from quotaflow.models.audit import AuditLog
    from quotaflow.models.commission import CommissionPlan
    from quotaflow.models.deal import Deal


class UserRole(str, Enum):
    """User roles for access control."""
    ADMIN = "admin"
    AE = "ae"


class AEProfileStatus(str, Enum):
    """Whether an AE participates in deal assignment and reporting."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(BaseModel):
    """
    User account.

    Email is stored lowercased; it is the key used to link an AE to
    an Attio workspace member.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(
            UserRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=UserRole.AE,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    ae_profile: Mapped[Optional["AEProfile"]] = relationship(
        "AEProfile",
        back_populates="user",
        uselist=False,
    )
    audit_logs: Mapped[List["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="actor",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"


class AEProfile(BaseModel):
    """
    Account executive compensation profile (one per user).

    - annual_target / start_date drive the ramp-adjusted quota
    - commission_plan_id picks the plan used for bonus rules and accelerators
    - attio_workspace_member_id is unique: one AE per Attio member
    """

    __tablename__ = "ae_profiles"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    status: Mapped[AEProfileStatus] = mapped_column(
        SQLAlchemyEnum(
            AEProfileStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=AEProfileStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    annual_target: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Annual quota in USD",
    )
    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Hire date, used for the ramp quarter",
    )
    commission_plan_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("commission_plans.id", ondelete="SET NULL"),
        nullable=True,
    )
    payout_currency: Mapped[str] = mapped_column(
        String(3),
        default="USD",
        server_default="USD",
        nullable=False,
    )
    attio_workspace_member_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("attio_workspace_members.id"),
        unique=True,
        nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="ae_profile")
    commission_plan: Mapped[Optional["CommissionPlan"]] = relationship("CommissionPlan")
    attio_member: Mapped[Optional["AttioWorkspaceMember"]] = relationship("AttioWorkspaceMember")
    deals: Mapped[List["Deal"]] = relationship(
        "Deal",
        back_populates="ae_profile",
    )

    def __repr__(self) -> str:
        return (
            f"<AEProfile(id={self.id}, user_id={self.user_id}, "
            f"attio_member={self.attio_workspace_member_id})>"
        )
