"""
Attio sync schemas.

ParsedMember / ParsedDeal are the normalized shapes the sync works with;
everything past the parser only sees these.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ParsedMember(BaseModel):
    """Workspace member extracted from an Attio payload."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    status: Optional[str] = None
    raw: Any = None


class ParsedDeal(BaseModel):
    """Deal record extracted from an Attio payload."""

    attio_record_id: str
    deal_name: str = "Untitled deal"
    account_name: Optional[str] = None
    amount: float = 0.0
    commissionable_amount: Optional[float] = None
    close_date: datetime
    status: str = ""
    owner_workspace_member_id: Optional[str] = None
    raw: Any = None

    @property
    def is_won(self) -> bool:
        return "won" in self.status.lower()


class ReconcileResult(BaseModel):
    """Outcome of mapping deals to AE profiles."""

    member_ids_mapped: int = 0
    deals_updated: int = 0


class UserLinkResult(BaseModel):
    """Outcome of linking AE profiles to Attio members by email."""

    ae_profiles_linked: int = 0
    ae_profiles_updated: int = 0
    conflicts: int = 0


class SyncResult(BaseModel):
    """Counts for one Attio sync run. Dumped by alias into the audit log."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    members_fetched: int = 0
    members_parsed: int = 0
    members_upserted: int = 0
    members_repaired: int = 0
    member_conflicts: int = 0
    deals_fetched: int = 0
    deals_parsed: int = 0
    deals_won: int = 0
    deals_upserted: int = 0
    deals_purged: int = 0
    deals_assigned: int = 0
    bonus_rules_applied: int = 0


class AttioLinkRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workspace_member_id: str = Field(..., min_length=1, max_length=100)
