"""
Currency conversion for commission payouts.

Commissions are computed in USD; FxRate.rate is local currency per 1 USD
for a calendar year. A missing rate converts at 1.
"""

import logging
import math
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.models import AuditAction, FxRate
from quotaflow.services.numeric import to_number
from quotaflow.utils.audit import log_action

logger = logging.getLogger(__name__)

BASE_CURRENCY = "USD"


def get_fx_rate(currency_code: Optional[str], year: int, rates: Iterable[Any]) -> float:
    """
    Look up the rate for (currency, year).

    USD is always 1. Missing or non-positive rates fall back to 1.
    """
    code = (currency_code or BASE_CURRENCY).strip().upper()
    if code == BASE_CURRENCY:
        return 1.0

    for rate in rates:
        if rate.currency_code.upper() == code and rate.year == year:
            value = to_number(rate.rate)
            if value > 0:
                return value
            break

    logger.debug(f"No FX rate for {code} {year}, using 1")
    return 1.0


def convert_from_usd(amount: float, currency_code: Optional[str], year: int, rates: Iterable[Any]) -> float:
    """Convert a USD amount to the payout currency."""
    return amount * get_fx_rate(currency_code, year, rates)


async def list_fx_rates(db: AsyncSession, year: Optional[int] = None) -> list[FxRate]:
    """FX rates, newest year first."""
    query = select(FxRate).order_by(FxRate.year.desc(), FxRate.currency_code)
    if year is not None:
        query = query.where(FxRate.year == year)
    result = await db.execute(query)
    return list(result.scalars().all())


async def upsert_fx_rate(
    db: AsyncSession,
    currency_code: str,
    year: int,
    rate: float,
    actor_user_id: Optional[int] = None,
) -> FxRate:
    """
    Create or update the rate for (currency, year).

    Raises:
        ValueError: empty currency code or non-positive rate
    """
    code = (currency_code or "").strip().upper()
    if not code:
        raise ValueError("currency_code is required")
    if not math.isfinite(rate) or rate <= 0:
        raise ValueError("rate must be a positive number")

    result = await db.execute(
        select(FxRate).where(FxRate.currency_code == code, FxRate.year == year)
    )
    fx_rate = result.scalar_one_or_none()
    if fx_rate is None:
        fx_rate = FxRate(currency_code=code, year=year, rate=rate)
        db.add(fx_rate)
    else:
        fx_rate.rate = rate

    await db.flush()
    await log_action(
        db,
        AuditAction.FX_RATE_UPDATED,
        entity_type="FxRate",
        entity_id=fx_rate.id,
        details={"currencyCode": code, "year": year, "rate": rate},
        actor_user_id=actor_user_id,
    )
    logger.info(f"FX rate {code} {year} set to {rate}")
    return fx_rate
