"""Pydantic schemas for results and request validation."""

from quotaflow.schemas.attio import (
    AttioLinkRequest,
    ParsedDeal,
    ParsedMember,
    ReconcileResult,
    SyncResult,
    UserLinkResult,
)
from quotaflow.schemas.commission import (
    AcceleratorTier,
    BonusBreakdownItem,
    BonusToggleRequest,
    CommissionSummary,
    DealLineItem,
    FxRateResponse,
    FxRateUpdate,
    Leaderboard,
    LeaderboardRow,
    QuarterStatement,
    TargetResult,
)

__all__ = [
    # Attio
    "ParsedMember",
    "ParsedDeal",
    "ReconcileResult",
    "UserLinkResult",
    "SyncResult",
    "AttioLinkRequest",
    # Commission
    "BonusBreakdownItem",
    "DealLineItem",
    "QuarterStatement",
    "TargetResult",
    "AcceleratorTier",
    "CommissionSummary",
    "LeaderboardRow",
    "Leaderboard",
    "BonusToggleRequest",
    "FxRateUpdate",
    "FxRateResponse",
]
