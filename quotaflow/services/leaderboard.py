"""AE leaderboard by closed-won amount."""

from datetime import datetime, timezone
from typing import Any, Iterable, NamedTuple, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quotaflow.config import Settings, settings as default_settings
from quotaflow.models import AEProfile, AEProfileStatus
from quotaflow.schemas.commission import Leaderboard, LeaderboardRow
from quotaflow.services.commission import DEFAULT_CLOSED_WON_VALUE, ClosedWonMatcher, is_closed_won
from quotaflow.services.numeric import to_number
from quotaflow.services.quarters import get_view_date_range, to_utc_datetime
from quotaflow.services.statements import load_won_deals


def compute_ae_leaderboard(
    aes: Sequence[Any],
    deals: Iterable[Any],
    closed_won_value: ClosedWonMatcher = DEFAULT_CLOSED_WON_VALUE,
) -> Leaderboard:
    """
    Rank AEs by closed-won amount, highest first.

    Args:
        aes: Objects with id, full_name, email
        deals: Objects with ae_profile_id, status, amount

    Returns:
        Leaderboard with one row per AE (including AEs with no wins) and totals
    """
    by_ae: dict = {}
    for deal in deals:
        if is_closed_won(deal.status, closed_won_value):
            by_ae.setdefault(deal.ae_profile_id, []).append(deal)

    rows = []
    for ae in aes:
        won = by_ae.get(ae.id, [])
        rows.append(
            LeaderboardRow(
                ae_id=ae.id,
                full_name=getattr(ae, "full_name", None),
                email=getattr(ae, "email", None),
                deal_count=len(won),
                closed_won_amount=sum(to_number(d.amount) for d in won),
            )
        )

    rows.sort(key=lambda r: r.closed_won_amount, reverse=True)

    return Leaderboard(
        deal_count=sum(r.deal_count for r in rows),
        closed_won_amount=sum(r.closed_won_amount for r in rows),
        rows=rows,
    )


class Entrant(NamedTuple):
    id: int
    full_name: Optional[str]
    email: Optional[str]


async def build_leaderboard(
    db: AsyncSession,
    view: str = "ytd",
    now: Optional[datetime] = None,
    config: Optional[Settings] = None,
) -> Leaderboard:
    """Leaderboard of active AEs over a reporting view."""
    config = config or default_settings
    now = to_utc_datetime(now) if now is not None else datetime.now(timezone.utc)
    start, end = get_view_date_range(view, now)

    result = await db.execute(
        select(AEProfile)
        .where(AEProfile.status == AEProfileStatus.ACTIVE)
        .options(selectinload(AEProfile.user))
    )
    profiles = result.scalars().all()
    entrants = [
        Entrant(p.id, p.user.full_name if p.user else None, p.user.email if p.user else None)
        for p in profiles
    ]
    deals = await load_won_deals(db, [e.id for e in entrants], start, end, config.closed_won_value)
    return compute_ae_leaderboard(entrants, deals, config.closed_won_value)
