"""
Commission calculation engine.

Rules:
- A deal's plan is the one whose validity window contains the close date;
  overlapping plans resolve to the latest effective_start_date
- Total rate = plan base rate + sum of applicable bonus rule rate_add
- Commission = commissionable amount (falls back to amount) x total rate
- Annual accelerator pays (amount over target) x (tier rate - base rate)
  once YTD attainment reaches 100%

All functions are pure: they take plain objects (ORM rows or anything with
the same attributes) and never touch the database.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from quotaflow.schemas.commission import (
    AcceleratorTier,
    BonusBreakdownItem,
    DealLineItem,
    QuarterStatement,
)
from quotaflow.services.errors import NoActivePlanError
from quotaflow.services.numeric import to_number
from quotaflow.services.quarters import to_utc_datetime

logger = logging.getLogger(__name__)

DEFAULT_CLOSED_WON_VALUE = "won"
MULTI_YEAR_MIN_TERM_MONTHS = 24

ClosedWonMatcher = Union[str, Callable[[str], bool]]


def is_closed_won(status: Optional[str], closed_won_value: ClosedWonMatcher = DEFAULT_CLOSED_WON_VALUE) -> bool:
    """
    Check whether a deal status counts as closed-won.

    A string matcher is a case-insensitive substring ("Closed Won 🎉",
    "WON" and "won" all match "won"). A callable is used as-is.
    """
    if callable(closed_won_value):
        return bool(closed_won_value(status or ""))
    return closed_won_value.lower() in (status or "").lower()


def _in_window(moment: Optional[datetime], start: Any, end: Any) -> bool:
    """Inclusive [start, end] check; missing bounds are open."""
    if moment is None:
        return False
    start_dt = to_utc_datetime(start)
    end_dt = to_utc_datetime(end)
    if start_dt is not None and moment < start_dt:
        return False
    if end_dt is not None and moment > end_dt:
        return False
    return True


# ── Plan resolution ─────────────────────────────────────


def select_plan_for_close_date(plans: Iterable[Any], close_date: Any, preferred_plan: Any = None):
    """
    Pick the commission plan active on a close date.

    A preferred plan (the AE's assigned plan) wins whenever its window
    contains the date. Otherwise, among plans whose window contains the
    date, the one with the latest effective_start_date wins. Ties keep
    input order.

    Raises:
        NoActivePlanError: no plan covers the date
    """
    moment = to_utc_datetime(close_date)
    if (
        preferred_plan is not None
        and to_utc_datetime(preferred_plan.effective_start_date) is not None
        and _in_window(moment, preferred_plan.effective_start_date, preferred_plan.effective_end_date)
    ):
        return preferred_plan

    active = [
        plan for plan in plans
        if to_utc_datetime(plan.effective_start_date) is not None
        and _in_window(moment, plan.effective_start_date, plan.effective_end_date)
    ]
    if not active:
        raise NoActivePlanError(moment)

    active.sort(key=lambda p: to_utc_datetime(p.effective_start_date), reverse=True)
    return active[0]


# ── Bonus rules ─────────────────────────────────────────


def is_bonus_rule_active_for_date(rule: Any, close_date: Any) -> bool:
    """
    Check that a rule is enabled and its optional date bounds contain the close date.

    Rules without date bounds are always active.
    """
    if not rule.enabled:
        return False
    return _in_window(
        to_utc_datetime(close_date),
        getattr(rule, "effective_start_date", None),
        getattr(rule, "effective_end_date", None),
    )


def _is_multi_year(deal: Any) -> bool:
    if getattr(deal, "is_multi_year", False):
        return True
    term = getattr(deal, "term_length_months", None)
    return term is not None and to_number(term) >= MULTI_YEAR_MIN_TERM_MONTHS


DEAL_PREDICATES: Dict[str, Callable[[Any], bool]] = {
    "multi_year": _is_multi_year,
    "testimonial": lambda deal: bool(getattr(deal, "has_testimonial_commitment", False)),
    "marketing": lambda deal: bool(getattr(deal, "has_marketing_commitment", False)),
}


class BonusEligibility:
    """Decides whether an enabled, in-date rule applies to a deal."""

    def applies(self, rule: Any, deal: Any) -> bool:
        raise NotImplementedError


class AllowListEligibility(BonusEligibility):
    """Rule applies when its id is in the deal's applied_bonus_rule_ids."""

    def applies(self, rule: Any, deal: Any) -> bool:
        applied = getattr(deal, "applied_bonus_rule_ids", None) or []
        return rule.id in applied


class PredicateEligibility(BonusEligibility):
    """Rule applies when its named predicate is true for the deal."""

    def __init__(self, predicates: Optional[Dict[str, Callable[[Any], bool]]] = None):
        self.predicates = predicates if predicates is not None else DEAL_PREDICATES

    def applies(self, rule: Any, deal: Any) -> bool:
        predicate = self.predicates.get(getattr(rule, "predicate", None) or "")
        if predicate is None:
            return False
        return bool(predicate(deal))


def evaluate_bonus_rules(
    deal: Any,
    plan: Any,
    bonus_rules: Iterable[Any],
    eligibility: Optional[BonusEligibility] = None,
) -> Tuple[List[BonusBreakdownItem], float]:
    """
    Determine the bonus rules that apply to a deal under its plan.

    Returns:
        (breakdown, total bonus rate)
    """
    eligibility = eligibility or AllowListEligibility()
    breakdown = [
        BonusBreakdownItem(
            rule_id=getattr(rule, "id", None),
            name=rule.name,
            rate_add=to_number(rule.rate_add),
        )
        for rule in bonus_rules
        if rule.commission_plan_id == plan.id
        and is_bonus_rule_active_for_date(rule, deal.close_date)
        and eligibility.applies(rule, deal)
    ]
    return breakdown, sum(item.rate_add for item in breakdown)


# ── Statements ──────────────────────────────────────────


def commissionable_amount_for(deal: Any) -> float:
    """Commissionable amount, falling back to amount when unset."""
    value = getattr(deal, "commissionable_amount", None)
    if value is None:
        value = deal.amount
    return to_number(value)


def compute_commission_for_deal(
    deal: Any,
    plan: Any,
    bonus_rules: Iterable[Any],
    eligibility: Optional[BonusEligibility] = None,
) -> DealLineItem:
    """Commission line item for one deal under a resolved plan."""
    base_rate = to_number(plan.base_commission_rate)
    breakdown, bonus_rate = evaluate_bonus_rules(deal, plan, bonus_rules, eligibility)
    total_rate = base_rate + bonus_rate
    commissionable = commissionable_amount_for(deal)

    return DealLineItem(
        deal_id=getattr(deal, "id", None),
        deal_name=getattr(deal, "deal_name", None),
        plan_id=getattr(plan, "id", None),
        applied_base_rate=base_rate,
        applied_bonus_breakdown=breakdown,
        applied_total_rate=total_rate,
        commissionable_amount=commissionable,
        commission_amount=commissionable * total_rate,
    )


def compute_quarter_statement(
    year: int,
    quarter: int,
    deals: Iterable[Any],
    plans: Sequence[Any],
    bonus_rules: Sequence[Any],
    closed_won_value: ClosedWonMatcher = DEFAULT_CLOSED_WON_VALUE,
    eligibility: Optional[BonusEligibility] = None,
    preferred_plan: Any = None,
) -> QuarterStatement:
    """
    Build a statement from won deals.

    Each deal is paid under preferred_plan when it covers the close date,
    else under the latest-starting plan that does.

    total_closed_won_amount sums deal.amount; total_commission sums the
    line items (which use commissionable amounts).

    Raises:
        NoActivePlanError: a won deal has no covering plan
    """
    won_deals = [d for d in deals if is_closed_won(d.status, closed_won_value)]

    line_items = []
    for deal in won_deals:
        plan = select_plan_for_close_date(plans, deal.close_date, preferred_plan)
        line_items.append(compute_commission_for_deal(deal, plan, bonus_rules, eligibility))

    return QuarterStatement(
        year=year,
        quarter=quarter,
        total_closed_won_amount=sum(to_number(d.amount) for d in won_deals),
        total_commission=sum(item.commission_amount for item in line_items),
        line_items=line_items,
    )


# ── Accelerators ────────────────────────────────────────


def normalize_tiers(accelerators: Iterable[Any]) -> List[AcceleratorTier]:
    """Convert accelerator rows to tiers sorted by ascending min_attainment."""
    tiers = [
        AcceleratorTier(
            id=getattr(a, "id", None),
            min_attainment=to_number(a.min_attainment),
            max_attainment=None if a.max_attainment is None else to_number(a.max_attainment),
            commission_rate=to_number(a.commission_rate),
        )
        for a in accelerators
    ]
    tiers.sort(key=lambda t: t.min_attainment)
    return tiers


def select_accelerator_tier(tiers: Sequence[AcceleratorTier], attainment: float) -> Optional[AcceleratorTier]:
    """
    Pick the accelerator tier for an attainment percentage.

    Tiers are scanned in ascending order and every match overwrites the
    previous one, so the last matching tier wins. With no match the first
    tier is returned; with no tiers, None.
    """
    if not tiers:
        return None

    selected = None
    for tier in tiers:
        meets_min = attainment >= tier.min_attainment
        meets_max = tier.max_attainment is None or attainment <= tier.max_attainment
        if meets_min and meets_max:
            selected = tier

    return selected if selected is not None else tiers[0]


def compute_quota_attainment(closed_won_amount: float, adjusted_annual_target: float) -> float:
    """YTD attainment in percent; 0 when there is no target."""
    if adjusted_annual_target <= 0:
        return 0.0
    return closed_won_amount / adjusted_annual_target * 100


def compute_annual_accelerator_bonus(
    ytd_closed_won_amount: float,
    adjusted_annual_target: float,
    tier: Optional[AcceleratorTier],
    base_rate: float,
) -> float:
    """
    Extra commission on the amount closed over target.

    Zero unless attainment >= 100%, something was closed over target,
    a tier is selected and its rate beats the base rate.
    """
    if tier is None or adjusted_annual_target <= 0:
        return 0.0

    attainment = compute_quota_attainment(ytd_closed_won_amount, adjusted_annual_target)
    amount_over_target = ytd_closed_won_amount - adjusted_annual_target
    if attainment < 100 or amount_over_target <= 0:
        return 0.0

    accelerator_rate = tier.commission_rate - base_rate
    if accelerator_rate <= 0:
        return 0.0
    return amount_over_target * accelerator_rate
