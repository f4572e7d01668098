"""
Commission plan configuration: plans, bonus rules, performance accelerators, FX rates.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotaflow.models.base import BaseModel


class CommissionPlan(BaseModel):
    """
    A commission plan with a validity window.

    Deleting a plan removes its bonus rules and accelerators.
    """

    __tablename__ = "commission_plans"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    base_commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
        comment="Fraction, e.g. 0.1000 = 10%",
    )
    effective_start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    effective_end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Open-ended when null",
    )

    # Relationships
    bonus_rules: Mapped[List["BonusRule"]] = relationship(
        "BonusRule",
        back_populates="commission_plan",
        cascade="all, delete-orphan",
        order_by="BonusRule.name",
    )
    performance_accelerators: Mapped[List["PerformanceAccelerator"]] = relationship(
        "PerformanceAccelerator",
        back_populates="commission_plan",
        cascade="all, delete-orphan",
        order_by="PerformanceAccelerator.min_attainment",
    )

    def __repr__(self) -> str:
        return f"<CommissionPlan(id={self.id}, name='{self.name}', rate={self.base_commission_rate})>"


class BonusRule(BaseModel):
    """
    Additive rate bonus attached to a plan.

    Applies to a deal when the deal's applied_bonus_rule_ids contains the
    rule id. attio_attribute_slug lets the sync auto-apply the rule from a
    checkbox attribute; predicate names a deal predicate for demo data.
    """

    __tablename__ = "bonus_rules"

    commission_plan_id: Mapped[int] = mapped_column(
        ForeignKey("commission_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    rate_add: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    effective_start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    effective_end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    attio_attribute_slug: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Attio checkbox/select attribute that auto-applies this rule",
    )
    predicate: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="multi_year | testimonial | marketing",
    )

    commission_plan: Mapped["CommissionPlan"] = relationship(
        "CommissionPlan",
        back_populates="bonus_rules",
    )

    def __repr__(self) -> str:
        return f"<BonusRule(id={self.id}, name='{self.name}', rate_add={self.rate_add})>"


class PerformanceAccelerator(BaseModel):
    """Replacement commission rate for an attainment band (percent)."""

    __tablename__ = "performance_accelerators"

    commission_plan_id: Mapped[int] = mapped_column(
        ForeignKey("commission_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    min_attainment: Mapped[Decimal] = mapped_column(
        Numeric(7, 2),
        nullable=False,
    )
    max_attainment: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(7, 2),
        nullable=True,
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
    )

    commission_plan: Mapped["CommissionPlan"] = relationship(
        "CommissionPlan",
        back_populates="performance_accelerators",
    )

    def __repr__(self) -> str:
        return (
            f"<PerformanceAccelerator(id={self.id}, min={self.min_attainment}, "
            f"max={self.max_attainment}, rate={self.commission_rate})>"
        )


class FxRate(BaseModel):
    """Annual FX rate: units of local currency per 1 USD."""

    __tablename__ = "fx_rates"
    __table_args__ = (
        UniqueConstraint("currency_code", "year", name="uq_fx_rates_currency_year"),
    )

    currency_code: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(14, 6),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<FxRate({self.currency_code} {self.year}: {self.rate})>"
