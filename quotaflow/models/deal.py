"""
Deal model: won deals synced from Attio.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import BaseModel

if TYPE_CHECKING:
    from quotaflow.models.user import AEProfile


class Deal(BaseModel):
    """
    A closed deal mirrored from an Attio deal record.

    - attio_record_id is the upsert key
    - commissionable_amount may differ from amount (e.g. first-year value
      of a multi-year contract)
    - ae_profile_id is derived from attio_owner_workspace_member_id by
      the ownership reconciler
    - applied_bonus_rule_ids is the per-deal bonus allow-list
    """

    __tablename__ = "deals"

    attio_record_id: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    deal_name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    account_name: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )
    commissionable_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Falls back to amount when null",
    )
    close_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # Predicate-strategy inputs
    term_length_months: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    is_multi_year: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    has_testimonial_commitment: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    has_marketing_commitment: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Ownership
    ae_profile_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("ae_profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    attio_owner_workspace_member_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )

    applied_bonus_rule_ids: Mapped[List[int]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    rev_ops_approved: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    raw_attio_payload: Mapped[Optional[dict]] = mapped_column(
        JSON,
        nullable=True,
    )

    ae_profile: Mapped[Optional["AEProfile"]] = relationship(
        "AEProfile",
        back_populates="deals",
    )

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, attio={self.attio_record_id}, status='{self.status}')>"
