"""
Audit logging utilities.

Sync runs and admin actions are recorded as structured audit entries.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.models.audit import AuditAction, AuditLog


async def log_action(
    db: AsyncSession,
    action: AuditAction,
    entity_type: Optional[str] = None,
    entity_id: Optional[Any] = None,
    details: Optional[dict[str, Any]] = None,
    actor_user_id: Optional[int] = None,
) -> AuditLog:
    """
    Log an auditable action.

    Args:
        db: Database session
        action: Type of action being performed
        entity_type: Type of entity affected (e.g. "Attio", "Deal")
        entity_id: ID of the affected entity (stored as a string)
        details: Structured details of the action
        actor_user_id: User performing the action, None for scheduled jobs

    Returns:
        Created AuditLog entry
    """
    log_entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=None if entity_id is None else str(entity_id),
        details_json=details,
    )
    db.add(log_entry)
    # Note: commit should happen in the calling context
    return log_entry


def audit_entry_payload(entry: AuditLog) -> dict[str, Any]:
    """Serialize an audit entry in the external audit format."""
    return {
        "actorUserId": entry.actor_user_id,
        "action": entry.action.value,
        "entityType": entry.entity_type,
        "entityId": entry.entity_id,
        "detailsJson": entry.details_json,
    }
