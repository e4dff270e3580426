"""Background jobs run by the API process."""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import settings
from src.db import session as db_session
from src.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)

TRIAL_EXPIRY_JOB_ID = "trial_expiry_sweep"


async def run_trial_expiry_sweep() -> int:
    """Flip lapsed trials to past_due in their own transaction."""

    async with db_session.async_session_factory() as session:
        try:
            count = await SubscriptionService(session).process_trial_expiry()
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Trial expiry sweep failed")
            raise
    return count


def build_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_trial_expiry_sweep,
        IntervalTrigger(minutes=settings.scheduler.trial_sweep_minutes),
        id=TRIAL_EXPIRY_JOB_ID,
        name="Trial Expiry Sweep",
        replace_existing=True,
    )
    return scheduler
