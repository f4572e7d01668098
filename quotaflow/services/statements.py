"""
Commission summaries for the dashboard and admin reporting.

Loads what the pure engine needs from the database and assembles a
CommissionSummary per AE. Nothing here writes.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quotaflow.config import Settings, settings as default_settings
from quotaflow.models import AEProfile, AEProfileStatus, CommissionPlan, Deal, FxRate, User
from quotaflow.schemas.commission import CommissionSummary, QuarterStatement
from quotaflow.services.commission import (
    compute_annual_accelerator_bonus,
    compute_quarter_statement,
    compute_quota_attainment,
    normalize_tiers,
    select_accelerator_tier,
)
from quotaflow.services.fx import get_fx_rate
from quotaflow.services.numeric import to_number
from quotaflow.services.quarters import (
    VIEWS,
    get_previous_quarter,
    get_quarter_for_date,
    get_view_date_range,
    to_utc_datetime,
)
from quotaflow.services.targets import calculate_effective_target

logger = logging.getLogger(__name__)


async def load_plans(db: AsyncSession) -> List[CommissionPlan]:
    """All commission plans with their rules and accelerators."""
    result = await db.execute(
        select(CommissionPlan)
        .options(
            selectinload(CommissionPlan.bonus_rules),
            selectinload(CommissionPlan.performance_accelerators),
        )
        .order_by(CommissionPlan.id)
    )
    return list(result.scalars().all())


async def load_won_deals(
    db: AsyncSession,
    ae_profile_ids: Sequence[int],
    start: datetime,
    end: datetime,
    closed_won_value: str,
) -> List[Deal]:
    """Won deals for the given AEs with close_date in [start, end]."""
    if not ae_profile_ids:
        return []
    result = await db.execute(
        select(Deal)
        .where(
            Deal.ae_profile_id.in_(ae_profile_ids),
            Deal.status.ilike(f"%{closed_won_value}%"),
            Deal.close_date >= start,
            Deal.close_date <= end,
        )
        .order_by(Deal.close_date, Deal.id)
    )
    return list(result.scalars().all())


def _statement_period(view: str, now: datetime) -> tuple[int, int]:
    year, quarter = get_quarter_for_date(now)
    if view == "prevq":
        return get_previous_quarter(year, quarter)
    return year, quarter


def summarize_ae(
    profile: AEProfile,
    view: str,
    now: datetime,
    period_deals: Sequence[Deal],
    ytd_deals: Sequence[Deal],
    plans: Sequence[CommissionPlan],
    fx_rates: Sequence[FxRate],
    closed_won_value: str,
) -> CommissionSummary:
    """
    Assemble one AE's summary from preloaded rows.

    Raises:
        NoActivePlanError: a won deal has no covering plan
    """
    year, quarter = get_quarter_for_date(now)
    statement_year, statement_quarter = _statement_period(view, now)
    plan = profile.commission_plan

    if plan is None:
        statement = QuarterStatement(
            year=statement_year,
            quarter=statement_quarter,
            total_commission=0.0,
            total_closed_won_amount=0.0,
        )
    else:
        bonus_rules = [rule for p in plans for rule in p.bonus_rules]
        statement = compute_quarter_statement(
            statement_year,
            statement_quarter,
            period_deals,
            plans,
            bonus_rules,
            closed_won_value=closed_won_value,
            preferred_plan=plan,
        )

    target = calculate_effective_target(profile.annual_target, profile.start_date, view, year, quarter)
    ytd_amount = sum(to_number(d.amount) for d in ytd_deals)
    attainment = compute_quota_attainment(ytd_amount, target.adjusted_annual_target)

    base_rate = to_number(plan.base_commission_rate) if plan else 0.0
    tier = select_accelerator_tier(normalize_tiers(plan.performance_accelerators), attainment) if plan else None
    accelerator_bonus = compute_annual_accelerator_bonus(
        ytd_amount, target.adjusted_annual_target, tier, base_rate,
    )

    total_usd = statement.total_commission + accelerator_bonus
    currency = (profile.payout_currency or "USD").upper()
    fx_rate = get_fx_rate(currency, year, fx_rates)

    return CommissionSummary(
        ae_profile_id=profile.id,
        view=view,
        plan_name=plan.name if plan else None,
        base_rate=base_rate,
        statement=statement,
        target=target,
        ytd_closed_won_amount=ytd_amount,
        quota_attainment=attainment,
        current_tier=tier,
        annual_accelerator_bonus=accelerator_bonus,
        total_commission_usd=total_usd,
        payout_currency=currency,
        fx_rate=fx_rate,
        total_commission_payout=total_usd * fx_rate,
    )


async def _build_summaries(
    db: AsyncSession,
    profiles: Sequence[AEProfile],
    view: str,
    now: Optional[datetime],
    config: Optional[Settings],
) -> List[CommissionSummary]:
    if view not in VIEWS:
        raise ValueError(f"Unknown view: {view}")
    config = config or default_settings
    now = to_utc_datetime(now) if now is not None else datetime.now(timezone.utc)
    year, _ = get_quarter_for_date(now)

    profile_ids = [p.id for p in profiles]
    start, end = get_view_date_range(view, now)
    ytd_start, ytd_end = get_view_date_range("ytd", now)

    period_deals = await load_won_deals(db, profile_ids, start, end, config.closed_won_value)
    ytd_deals = await load_won_deals(db, profile_ids, ytd_start, ytd_end, config.closed_won_value)
    plans = await load_plans(db)
    fx_rates = (await db.execute(select(FxRate).where(FxRate.year == year))).scalars().all()

    period_by_ae: Dict[int, List[Deal]] = {}
    for deal in period_deals:
        period_by_ae.setdefault(deal.ae_profile_id, []).append(deal)
    ytd_by_ae: Dict[int, List[Deal]] = {}
    for deal in ytd_deals:
        ytd_by_ae.setdefault(deal.ae_profile_id, []).append(deal)

    return [
        summarize_ae(
            profile,
            view,
            now,
            period_by_ae.get(profile.id, []),
            ytd_by_ae.get(profile.id, []),
            plans,
            fx_rates,
            config.closed_won_value,
        )
        for profile in profiles
    ]


def _profile_query():
    return select(AEProfile).options(
        selectinload(AEProfile.user),
        selectinload(AEProfile.commission_plan).selectinload(CommissionPlan.performance_accelerators),
    )


async def build_commission_summary(
    db: AsyncSession,
    ae_profile_id: int,
    view: str = "qtd",
    now: Optional[datetime] = None,
    config: Optional[Settings] = None,
) -> Optional[CommissionSummary]:
    """
    Commission summary for one AE, or None if the profile doesn't exist.

    Raises:
        ValueError: unknown view
        NoActivePlanError: a won deal has no covering plan
    """
    result = await db.execute(_profile_query().where(AEProfile.id == ae_profile_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        return None

    summaries = await _build_summaries(db, [profile], view, now, config)
    return summaries[0]


async def build_team_report(
    db: AsyncSession,
    view: str = "ytd",
    now: Optional[datetime] = None,
    config: Optional[Settings] = None,
) -> List[CommissionSummary]:
    """Summaries for every active AE, ordered by name."""
    result = await db.execute(
        _profile_query()
        .join(AEProfile.user)
        .where(AEProfile.status == AEProfileStatus.ACTIVE)
        .order_by(User.full_name, AEProfile.id)
    )
    profiles = list(result.scalars().all())
    logger.debug(f"Building {view} report for {len(profiles)} AEs")
    return await _build_summaries(db, profiles, view, now, config)
