"""
Cache of Attio workspace members.
"""

from typing import Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from quotaflow.models.base import Base, TimestampMixin


class AttioWorkspaceMember(Base, TimestampMixin):
    """
    Workspace member as last seen in Attio.

    Keyed by the Attio member id. Email is lowercased and indexed but not
    unique: a re-issued member id briefly coexists with the stale row
    during identity repair.
    """

    __tablename__ = "attio_workspace_members"

    id: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )
    status: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    raw_attio_payload: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<AttioWorkspaceMember(id='{self.id}', email='{self.email}')>"
