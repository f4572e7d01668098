"""
Linking AE profiles to Attio workspace members.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quotaflow.models import (
    AEProfile,
    AEProfileStatus,
    AttioWorkspaceMember,
    AuditAction,
    User,
)
from quotaflow.schemas.attio import ReconcileResult, UserLinkResult
from quotaflow.services.deal_assignment import reconcile_deals_to_aes
from quotaflow.utils.audit import log_action

logger = logging.getLogger(__name__)


class UnknownMemberError(ValueError):
    """The Attio member id is not in the local cache."""


class MemberAlreadyLinkedError(ValueError):
    """The Attio member is linked to another AE profile."""


async def _set_member_link(db: AsyncSession, profile: AEProfile, member_id: str) -> bool:
    """Link inside a savepoint; False when the unique constraint rejects it."""
    try:
        async with db.begin_nested():
            profile.attio_workspace_member_id = member_id
            await db.flush()
    except IntegrityError:
        logger.warning(f"Unique constraint rejected linking Attio member {member_id}")
        return False
    return True


async def reconcile_users_to_attio_by_email(db: AsyncSession) -> UserLinkResult:
    """
    Link each active AE profile to the Attio member sharing its user's email.

    Profiles pointing at the wrong member are re-linked. A link that would
    give one member to two profiles is skipped and counted as a conflict.
    """
    profiles_result = await db.execute(
        select(AEProfile)
        .where(AEProfile.status == AEProfileStatus.ACTIVE)
        .options(selectinload(AEProfile.user))
    )
    profiles = profiles_result.scalars().all()

    members_result = await db.execute(
        select(AttioWorkspaceMember.id, AttioWorkspaceMember.email)
        .where(AttioWorkspaceMember.email.is_not(None))
    )
    member_by_email = {email.strip().lower(): member_id for member_id, email in members_result.all()}
    linked_members = {p.attio_workspace_member_id: p.id for p in profiles if p.attio_workspace_member_id}

    result = UserLinkResult()
    for profile in profiles:
        email = ((profile.user.email if profile.user else "") or "").strip().lower()
        member_id = member_by_email.get(email) if email else None
        if not member_id or profile.attio_workspace_member_id == member_id:
            continue

        holder = linked_members.get(member_id)
        if holder is not None and holder != profile.id:
            logger.warning(f"AE profile {profile.id}: Attio member {member_id} already linked to profile {holder}")
            result.conflicts += 1
            continue

        was_linked = profile.attio_workspace_member_id is not None
        if not await _set_member_link(db, profile, member_id):
            result.conflicts += 1
            continue

        linked_members[member_id] = profile.id
        if was_linked:
            result.ae_profiles_updated += 1
        else:
            result.ae_profiles_linked += 1

    return result


async def link_ae_profile_to_member(
    db: AsyncSession,
    user_id: int,
    workspace_member_id: str,
) -> tuple[AEProfile, ReconcileResult]:
    """
    Link a user's AE profile (created if missing) to an Attio member and
    pull in that member's deals.

    Raises:
        UnknownMemberError: member id not synced yet
        MemberAlreadyLinkedError: another AE profile holds the member
    """
    member = await db.get(AttioWorkspaceMember, workspace_member_id)
    if member is None:
        raise UnknownMemberError(f"Unknown workspace member id: {workspace_member_id}")

    result = await db.execute(select(AEProfile).where(AEProfile.user_id == user_id))
    profile = result.scalar_one_or_none()

    holder = await db.scalar(
        select(AEProfile.id).where(AEProfile.attio_workspace_member_id == workspace_member_id)
    )
    if holder is not None and (profile is None or holder != profile.id):
        raise MemberAlreadyLinkedError(
            f"Attio member {workspace_member_id} is already linked to AE profile {holder}"
        )

    if profile is None:
        if await db.get(User, user_id) is None:
            raise ValueError(f"User {user_id} not found")
        profile = AEProfile(user_id=user_id, status=AEProfileStatus.ACTIVE)
        db.add(profile)

    profile.attio_workspace_member_id = workspace_member_id
    await db.flush()

    reconcile = await reconcile_deals_to_aes(db, only_member_id=workspace_member_id)

    await log_action(
        db,
        AuditAction.AE_ATTIO_LINKED,
        entity_type="AEProfile",
        entity_id=profile.id,
        details={
            "attioWorkspaceMemberId": workspace_member_id,
            "dealsAssigned": reconcile.deals_updated,
        },
        actor_user_id=user_id,
    )
    logger.info(f"AE profile {profile.id} linked to Attio member {workspace_member_id}")
    return profile, reconcile
