"""
Ramp-adjusted quota targets.

- The quarter an AE is hired in is a ramp quarter worth 50% of the
  quarterly target
- Quarters before the hire quarter count for nothing
- AEs hired in an earlier year carry the full annual target
"""

from typing import Any

from quotaflow.schemas.commission import TargetResult
from quotaflow.services.numeric import to_number
from quotaflow.services.quarters import get_previous_quarter, to_utc_datetime

RAMP_FACTOR = 0.5


def _quarter_of_month(month: int) -> int:
    return (month - 1) // 3 + 1


def calculate_effective_target(
    annual_target: Any,
    start_date: Any,
    view: str,
    current_year: int,
    current_quarter: int,
) -> TargetResult:
    """
    Calculate the target for a reporting view.

    Args:
        annual_target: Annual quota (any numeric shape)
        start_date: AE hire date (None = fully ramped)
        view: "qtd", "ytd" or "prevq"
        current_year: Year being reported
        current_quarter: Quarter being reported (1-4)

    Returns:
        TargetResult; the YTD target is the ramp-adjusted annual target
    """
    annual = to_number(annual_target)
    if annual <= 0:
        return TargetResult(
            target=0.0,
            adjusted_annual_target=0.0,
            is_ramp_quarter=False,
            label="No target set",
        )

    quarterly_target = annual / 4
    hired = to_utc_datetime(start_date)

    start_quarter = None
    if hired is not None and hired.year == current_year:
        start_quarter = _quarter_of_month(hired.month)

    adjusted_annual_target = annual
    if start_quarter is not None:
        full_quarters_remaining = 4 - start_quarter
        adjusted_annual_target = (
            quarterly_target * RAMP_FACTOR + full_quarters_remaining * quarterly_target
        )

    if view == "qtd":
        is_ramp = start_quarter == current_quarter
        return TargetResult(
            target=quarterly_target * RAMP_FACTOR if is_ramp else quarterly_target,
            adjusted_annual_target=adjusted_annual_target,
            is_ramp_quarter=is_ramp,
            label=f"Q{current_quarter} Target (Ramp)" if is_ramp else f"Q{current_quarter} Target",
        )

    if view == "ytd":
        has_ramp = start_quarter is not None
        return TargetResult(
            target=adjusted_annual_target,
            adjusted_annual_target=adjusted_annual_target,
            is_ramp_quarter=has_ramp,
            label="Annual Target (ramp adjusted)" if has_ramp else "Annual Target",
        )

    if view == "prevq":
        prev_year, prev_quarter = get_previous_quarter(current_year, current_quarter)
        is_ramp = (
            hired is not None
            and hired.year == prev_year
            and _quarter_of_month(hired.month) == prev_quarter
        )
        return TargetResult(
            target=quarterly_target * RAMP_FACTOR if is_ramp else quarterly_target,
            adjusted_annual_target=adjusted_annual_target,
            is_ramp_quarter=is_ramp,
            label=f"Q{prev_quarter} Target (Ramp)" if is_ramp else f"Q{prev_quarter} Target",
        )

    return TargetResult(
        target=annual,
        adjusted_annual_target=adjusted_annual_target,
        is_ramp_quarter=False,
        label="Annual Target",
    )
