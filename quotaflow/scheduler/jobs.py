"""
Background job definitions using APScheduler.

Jobs:
- Periodic Attio sync (interval from settings)
- One-off Attio sync enqueued by admin actions
- Single retry of a failed sync run
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from quotaflow.config import settings
from quotaflow.db import get_db_context
from quotaflow.services.attio_sync import run_attio_sync

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

PERIODIC_JOB_ID = "attio_sync"
ONE_OFF_JOB_ID = "attio_sync_now"
RETRY_JOB_ID = "attio_sync_retry"


def _schedule_retry(actor_user_id: Optional[int]) -> None:
    run_at = datetime.now(timezone.utc) + timedelta(seconds=settings.attio_sync_retry_seconds)
    scheduler.add_job(
        attio_sync_job,
        trigger=DateTrigger(run_date=run_at),
        kwargs={"actor_user_id": actor_user_id, "is_retry": True},
        id=RETRY_JOB_ID,
        name="Retry Attio sync",
        replace_existing=True,
    )
    logger.info(f"Attio sync retry scheduled at {run_at.isoformat()}")


async def attio_sync_job(actor_user_id: Optional[int] = None, is_retry: bool = False) -> bool:
    """
    Run one Attio sync in its own session.

    A failed first attempt is rescheduled once; a failed retry is only logged.

    Returns:
        True if the run completed
    """
    logger.debug(f"Running Attio sync job (retry={is_retry})")
    try:
        async with get_db_context() as db:
            result = await run_attio_sync(db, actor_user_id=actor_user_id)
    except Exception:
        logger.exception("Attio sync job failed")
        if not is_retry:
            _schedule_retry(actor_user_id)
        return False

    logger.info(
        f"Attio sync job: {result.deals_upserted} deals upserted, "
        f"{result.deals_assigned} assigned"
    )
    return True


def enqueue_attio_sync(actor_user_id: Optional[int] = None) -> None:
    """Schedule an immediate one-off Attio sync."""
    scheduler.add_job(
        attio_sync_job,
        trigger=DateTrigger(run_date=datetime.now(timezone.utc)),
        kwargs={"actor_user_id": actor_user_id},
        id=ONE_OFF_JOB_ID,
        name="Attio sync (on demand)",
        replace_existing=True,
    )
    logger.info(f"Attio sync enqueued (actor={actor_user_id})")


def setup_scheduler() -> None:
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    if not settings.attio_api_key:
        logger.warning("ATTIO_API_KEY not set; periodic Attio sync disabled")
        return
    if settings.attio_sync_interval_minutes <= 0:
        logger.info("Periodic Attio sync disabled by interval setting")
        return

    scheduler.add_job(
        attio_sync_job,
        trigger=IntervalTrigger(minutes=settings.attio_sync_interval_minutes),
        id=PERIODIC_JOB_ID,
        name="Sync Attio members and deals",
        replace_existing=True,
    )
    logger.info(f"Scheduler configured: Attio sync every {settings.attio_sync_interval_minutes} min")
