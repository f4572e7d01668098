"""
Attio sync: pull workspace members and deals into local storage.

Run order:
1. Fetch members and deals concurrently
2. Upsert members, repairing re-issued member ids by email
3. Upsert won deals (non-won records are discarded)
4. Optionally purge stored deals that are no longer won
5. Map deals to AE profiles by Attio owner
6. Auto-apply attribute-linked bonus rules
7. Write the ATTIO_SYNC audit entry and commit

Every write step compares before writing, so a repeated run against
unchanged Attio data writes nothing but the audit entry.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.config import Settings, settings as default_settings
from quotaflow.models import (
    AEProfile,
    AttioWorkspaceMember,
    AuditAction,
    BonusRule,
    Deal,
)
from quotaflow.schemas.attio import ParsedDeal, ParsedMember, SyncResult
from quotaflow.services.attio_client import AttioClient
from quotaflow.services.attio_parser import (
    extract_attribute_flag,
    parse_deal_record,
    parse_member_record,
)
from quotaflow.services.deal_assignment import reconcile_deals_to_aes
from quotaflow.services.numeric import to_number
from quotaflow.services.quarters import to_utc_datetime
from quotaflow.utils.audit import log_action

logger = logging.getLogger(__name__)

PRELOAD_CHUNK = 500


class MemberIdentityConflict(Exception):
    """Repointing AE profiles to a re-issued member id would break uniqueness."""


def _money(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(round(to_number(value), 2)))


def _same(current: Any, new: Any) -> bool:
    """Compare a stored column value with an incoming one."""
    if current is None or new is None:
        return current is None and new is None
    if isinstance(current, (Decimal, float, int)) and not isinstance(current, bool):
        return round(to_number(current), 2) == round(to_number(new), 2)
    if isinstance(current, datetime):
        return to_utc_datetime(current) == to_utc_datetime(new)
    return current == new


def apply_changes(obj: Any, values: Dict[str, Any]) -> bool:
    """Set only the attributes that differ; True if anything changed."""
    changed = False
    for key, value in values.items():
        if not _same(getattr(obj, key), value):
            setattr(obj, key, value)
            changed = True
    return changed


# ── Members ─────────────────────────────────────────────


def dedupe_members(members: Iterable[ParsedMember]) -> List[ParsedMember]:
    """
    Collapse a batch to one record per id and per email.

    The last record seen for an email wins, matching the repair rule that
    the latest id survives.
    """
    by_key: Dict[str, ParsedMember] = {}
    for member in members:
        key = f"email:{member.email}" if member.email else f"id:{member.id}"
        by_key.pop(key, None)
        by_key[key] = member

    by_id: Dict[str, ParsedMember] = {}
    for member in by_key.values():
        by_id[member.id] = member
    return list(by_id.values())


async def _repair_member_identity(
    db: AsyncSession,
    member: ParsedMember,
    stale: List[AttioWorkspaceMember],
) -> None:
    """
    Replace stale member rows sharing member.email with the new id.

    Runs in a savepoint: insert the new row, repoint AE profiles from the
    stale ids, delete the stale rows. Either all of it lands or none.

    Raises:
        MemberIdentityConflict: the move would link one member to two profiles
        IntegrityError: the database rejected the move
    """
    stale_ids = [s.id for s in stale]
    async with db.begin_nested():
        holders = (
            await db.execute(
                select(AEProfile.id).where(AEProfile.attio_workspace_member_id.in_(stale_ids))
            )
        ).scalars().all()
        new_holder = await db.scalar(
            select(AEProfile.id).where(AEProfile.attio_workspace_member_id == member.id)
        )
        if len(holders) > 1 or (holders and new_holder is not None):
            raise MemberIdentityConflict(
                f"member {member.id} ({member.email}) would be linked to more than one AE profile"
            )

        db.add(
            AttioWorkspaceMember(
                id=member.id,
                email=member.email,
                full_name=member.full_name,
                status=member.status,
                raw_attio_payload=member.raw,
            )
        )
        await db.flush()

        await db.execute(
            update(AEProfile)
            .where(AEProfile.attio_workspace_member_id.in_(stale_ids))
            .values(attio_workspace_member_id=member.id)
            .execution_options(synchronize_session="evaluate")
        )
        for row in stale:
            await db.delete(row)
        await db.flush()


async def upsert_members(db: AsyncSession, members_raw: List[Any], result: SyncResult) -> None:
    """Upsert workspace members keyed by Attio id."""
    parsed = []
    for raw in members_raw:
        member = parse_member_record(raw)
        if member is None:
            logger.debug("Skipping Attio member without an id")
            continue
        parsed.append(member)
    result.members_parsed = len(parsed)

    for member in dedupe_members(parsed):
        existing = await db.get(AttioWorkspaceMember, member.id)
        if existing is not None:
            if apply_changes(existing, {
                "email": member.email,
                "full_name": member.full_name,
                "status": member.status,
                "raw_attio_payload": member.raw,
            }):
                result.members_upserted += 1
            continue

        stale: List[AttioWorkspaceMember] = []
        if member.email:
            # earlier email changes in this batch must be visible to the lookup
            await db.flush()
            stale = list((
                await db.execute(
                    select(AttioWorkspaceMember).where(
                        AttioWorkspaceMember.email == member.email,
                        AttioWorkspaceMember.id != member.id,
                    )
                )
            ).scalars().all())

        if stale:
            try:
                await _repair_member_identity(db, member, stale)
            except (MemberIdentityConflict, IntegrityError) as e:
                logger.warning(f"Attio member identity conflict for {member.email}: {e}")
                result.member_conflicts += 1
                continue
            logger.info(
                f"Attio member {member.email} re-issued: "
                f"{', '.join(s.id for s in stale)} -> {member.id}"
            )
            result.members_repaired += 1
            result.members_upserted += 1
            continue

        db.add(
            AttioWorkspaceMember(
                id=member.id,
                email=member.email,
                full_name=member.full_name,
                status=member.status,
                raw_attio_payload=member.raw,
            )
        )
        await db.flush()
        result.members_upserted += 1


# ── Deals ───────────────────────────────────────────────


async def _load_deals_by_record_id(db: AsyncSession, record_ids: List[str]) -> Dict[str, Deal]:
    deals: Dict[str, Deal] = {}
    for i in range(0, len(record_ids), PRELOAD_CHUNK):
        chunk = record_ids[i:i + PRELOAD_CHUNK]
        result = await db.execute(select(Deal).where(Deal.attio_record_id.in_(chunk)))
        for deal in result.scalars().all():
            deals[deal.attio_record_id] = deal
    return deals


def _deal_values(parsed: ParsedDeal) -> Dict[str, Any]:
    return {
        "deal_name": parsed.deal_name,
        "account_name": parsed.account_name,
        "amount": _money(parsed.amount),
        "commissionable_amount": _money(parsed.commissionable_amount),
        "close_date": parsed.close_date,
        "status": parsed.status,
        "attio_owner_workspace_member_id": parsed.owner_workspace_member_id,
        "raw_attio_payload": parsed.raw,
    }


async def upsert_deals(db: AsyncSession, won: List[ParsedDeal], result: SyncResult) -> Dict[str, Deal]:
    """
    Upsert won deals keyed by Attio record id.

    Returns:
        Stored deals by record id
    """
    # Last occurrence of a record id wins
    by_record = {d.attio_record_id: d for d in won}
    stored = await _load_deals_by_record_id(db, list(by_record))

    for record_id, parsed in by_record.items():
        values = _deal_values(parsed)
        deal = stored.get(record_id)
        if deal is None:
            deal = Deal(attio_record_id=record_id, applied_bonus_rule_ids=[], **values)
            db.add(deal)
            stored[record_id] = deal
            result.deals_upserted += 1
        elif apply_changes(deal, values):
            result.deals_upserted += 1

    await db.flush()
    return stored


async def purge_non_won_deals(
    db: AsyncSession,
    non_won_record_ids: List[str],
    closed_won_value: str = "won",
) -> int:
    """
    Delete stored deals whose Attio record (or stored status) is not won.

    A stored status counts as won when it contains closed_won_value, the
    same test the statements use.
    """
    conditions = [~Deal.status.ilike(f"%{closed_won_value}%")]
    if non_won_record_ids:
        conditions.append(Deal.attio_record_id.in_(non_won_record_ids))

    result = await db.execute(
        delete(Deal)
        .where(or_(*conditions))
        .execution_options(synchronize_session=False)
    )
    purged = result.rowcount or 0
    if purged:
        logger.info(f"Purged {purged} non-won deals")
    return purged


# ── Attribute-linked bonus rules ────────────────────────


async def apply_attribute_bonus_rules(
    db: AsyncSession,
    won: List[ParsedDeal],
    stored: Dict[str, Deal],
) -> int:
    """
    Add attribute-linked bonus rules to deals whose Attio attribute is true.

    Only rules on the owning AE's plan are applied. Rules are never removed
    here, so manual toggles and earlier applications survive.

    Returns:
        Number of (deal, rule) applications added
    """
    rules = (
        await db.execute(
            select(BonusRule).where(
                BonusRule.enabled.is_(True),
                BonusRule.attio_attribute_slug.is_not(None),
            )
        )
    ).scalars().all()
    if not rules:
        return 0

    plan_rows = await db.execute(
        select(AEProfile.id, AEProfile.commission_plan_id)
        .where(AEProfile.commission_plan_id.is_not(None))
    )
    plan_by_profile = {profile_id: plan_id for profile_id, plan_id in plan_rows.all()}

    applied_count = 0
    for parsed in won:
        deal = stored.get(parsed.attio_record_id)
        if deal is None or deal.ae_profile_id is None:
            continue
        plan_id = plan_by_profile.get(deal.ae_profile_id)
        if plan_id is None:
            continue

        applied = list(deal.applied_bonus_rule_ids or [])
        added = [
            rule.id for rule in rules
            if rule.commission_plan_id == plan_id
            and rule.id not in applied
            and extract_attribute_flag(parsed.raw, rule.attio_attribute_slug)
        ]
        if added:
            # New list object so the JSON column registers the change
            deal.applied_bonus_rule_ids = applied + added
            applied_count += len(added)

    if applied_count:
        await db.flush()
        logger.info(f"Auto-applied {applied_count} attribute-linked bonus rules")
    return applied_count


# ── Entry point ─────────────────────────────────────────


async def _fetch_attio(client: AttioClient) -> tuple[List[Any], List[Any]]:
    """Fetch members and deals concurrently; a failure cancels the other fetch."""
    try:
        async with asyncio.TaskGroup() as tg:
            members_task = tg.create_task(client.list_workspace_members_raw())
            deals_task = tg.create_task(client.list_deals_raw())
    except ExceptionGroup as group:
        raise group.exceptions[0]
    return members_task.result(), deals_task.result()


async def run_attio_sync(
    db: AsyncSession,
    client: Optional[AttioClient] = None,
    actor_user_id: Optional[int] = None,
    config: Optional[Settings] = None,
) -> SyncResult:
    """
    Run a full Attio sync and commit.

    Args:
        db: Database session
        client: Attio client (defaults to one built from settings)
        actor_user_id: User who triggered the run, None for scheduled runs
        config: Settings override

    Returns:
        SyncResult counts

    Raises:
        AttioError: fetching from Attio failed; nothing is written
    """
    config = config or default_settings
    client = client or AttioClient(config)
    started_at = datetime.now(timezone.utc)

    members_raw, deals_raw = await _fetch_attio(client)
    result = SyncResult(members_fetched=len(members_raw), deals_fetched=len(deals_raw))

    await upsert_members(db, members_raw, result)

    parsed_deals = [d for d in (parse_deal_record(raw) for raw in deals_raw) if d is not None]
    result.deals_parsed = len(parsed_deals)
    won = [d for d in parsed_deals if d.is_won]
    result.deals_won = len(won)

    stored = await upsert_deals(db, won, result)

    if config.attio_deals_purge_non_won:
        non_won_ids = [d.attio_record_id for d in parsed_deals if not d.is_won]
        result.deals_purged = await purge_non_won_deals(db, non_won_ids, config.closed_won_value)

    reconcile = await reconcile_deals_to_aes(db)
    result.deals_assigned = reconcile.deals_updated

    result.bonus_rules_applied = await apply_attribute_bonus_rules(db, won, stored)

    details = result.model_dump(by_alias=True)
    details["startedAt"] = started_at.isoformat()
    details["finishedAt"] = datetime.now(timezone.utc).isoformat()
    await log_action(
        db,
        AuditAction.ATTIO_SYNC,
        entity_type="Attio",
        entity_id="workspace",
        details=details,
        actor_user_id=actor_user_id,
    )
    await db.commit()

    logger.info(
        f"Attio sync done: members {result.members_upserted}/{result.members_fetched} upserted "
        f"({result.members_repaired} repaired, {result.member_conflicts} conflicts), "
        f"deals {result.deals_upserted}/{result.deals_won} won upserted, "
        f"{result.deals_assigned} assigned, {result.bonus_rules_applied} bonus rules applied"
    )
    return result
