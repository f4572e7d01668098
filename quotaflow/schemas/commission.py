"""Commission statement schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BonusBreakdownItem(BaseModel):
    """A bonus rule applied to a deal."""

    rule_id: Optional[int] = None
    name: str
    rate_add: float


class DealLineItem(BaseModel):
    """Commission for one won deal."""

    deal_id: Optional[int] = None
    deal_name: Optional[str] = None
    plan_id: Optional[int] = None
    applied_base_rate: float
    applied_bonus_breakdown: List[BonusBreakdownItem] = Field(default_factory=list)
    applied_total_rate: float
    commissionable_amount: float
    commission_amount: float


class QuarterStatement(BaseModel):
    """Period totals plus one line item per won deal."""

    year: int
    quarter: int = Field(..., ge=1, le=4)
    total_commission: float
    total_closed_won_amount: float
    line_items: List[DealLineItem] = Field(default_factory=list)


class TargetResult(BaseModel):
    """Ramp-adjusted target for a reporting view."""

    target: float
    adjusted_annual_target: float
    is_ramp_quarter: bool
    label: str


class AcceleratorTier(BaseModel):
    """Normalized performance accelerator tier (attainment in percent)."""

    id: Optional[int] = None
    min_attainment: float
    max_attainment: Optional[float] = None
    commission_rate: float


class CommissionSummary(BaseModel):
    """Everything the dashboard shows for one AE and view."""

    ae_profile_id: int
    view: str
    plan_name: Optional[str] = None
    base_rate: float = 0.0
    statement: QuarterStatement
    target: TargetResult
    ytd_closed_won_amount: float
    quota_attainment: float
    current_tier: Optional[AcceleratorTier] = None
    annual_accelerator_bonus: float
    total_commission_usd: float
    payout_currency: str = "USD"
    fx_rate: float = 1.0
    total_commission_payout: float


class LeaderboardRow(BaseModel):
    ae_id: int
    full_name: Optional[str] = None
    email: Optional[str] = None
    deal_count: int
    closed_won_amount: float


class Leaderboard(BaseModel):
    deal_count: int
    closed_won_amount: float
    rows: List[LeaderboardRow] = Field(default_factory=list)


class BonusToggleRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    bonus_rule_id: int
    enabled: bool


class FxRateUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    currency_code: str = Field(..., min_length=3, max_length=3)
    year: int = Field(..., ge=2000, le=2100)
    rate: float = Field(..., gt=0)


class FxRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    currency_code: str
    year: int
    rate: float
