"""
AuditLog model for tracking sync runs and admin actions.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, JSON, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import Base

if TYPE_CHECKING:
    from quotaflow.models.user import User


class AuditAction(str, Enum):
    """Types of auditable actions."""
    ATTIO_SYNC = "ATTIO_SYNC"
    AE_ATTIO_LINKED = "AE_ATTIO_LINKED"
    DEAL_BONUS_TOGGLED = "DEAL_BONUS_TOGGLED"
    FX_RATE_UPDATED = "FX_RATE_UPDATED"


class AuditLog(Base):
    """
    Audit log entry.

    actor_user_id is null for scheduled runs. details_json holds the
    structured payload (sync counts with startedAt/finishedAt, etc).
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[AuditAction] = mapped_column(
        SQLAlchemyEnum(
            AuditAction,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Type of entity affected (Attio, AEProfile, Deal, FxRate)",
    )
    entity_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="ID of the affected entity",
    )
    details_json: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
        comment="Structured details of the action",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Relationships
    actor: Mapped[Optional["User"]] = relationship(
        "User",
        back_populates="audit_logs",
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, actor={self.actor_user_id}, action={self.action})>"
