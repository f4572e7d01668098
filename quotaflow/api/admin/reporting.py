"""Admin reporting endpoints: team commission report and leaderboard."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.db import get_db
from quotaflow.schemas.commission import CommissionSummary, Leaderboard
from quotaflow.services.leaderboard import build_leaderboard
from quotaflow.services.quarters import VIEWS
from quotaflow.services.statements import build_team_report

router = APIRouter()


def _check_view(view: str) -> str:
    if view not in VIEWS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"view must be one of {', '.join(VIEWS)}",
        )
    return view


@router.get("/reporting", response_model=List[CommissionSummary])
async def team_report(
    view: str = Query("ytd"),
    db: AsyncSession = Depends(get_db),
):
    """Commission summary for every active AE."""
    return await build_team_report(db, _check_view(view))


@router.get("/leaderboard", response_model=Leaderboard)
async def leaderboard(
    view: str = Query("ytd"),
    db: AsyncSession = Depends(get_db),
):
    """Active AEs ranked by closed-won amount."""
    return await build_leaderboard(db, _check_view(view))
