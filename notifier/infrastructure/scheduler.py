"""
APScheduler setup for the dispatch and reclaim pollers.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from notifier.config.settings import Settings
from notifier.usecases.categories import CONFIRMATION, REMINDER, WELCOME

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global scheduler
    
    if scheduler is None:
        scheduler = AsyncIOScheduler(timezone="UTC")
    
    return scheduler


def register_jobs(sched: AsyncIOScheduler, dispatcher, reclaimer, settings: Settings) -> None:
    """
    Register one interval job per category plus the stale reclaimer.
    
    Each job runs at most one instance at a time; missed runs are coalesced.
    """
    intervals = (
        (WELCOME, settings.welcome_interval_seconds),
        (CONFIRMATION, settings.confirmation_interval_seconds),
        (REMINDER, settings.reminder_interval_seconds),
    )
    
    for category, seconds in intervals:
        job_id = f"dispatch_{category.kind.value}"
        sched.add_job(
            dispatcher.run_tick,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=f"{category.kind.value} dispatch",
            args=[category],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled {job_id} every {seconds}s")
    
    sched.add_job(
        reclaimer.run,
        trigger=IntervalTrigger(minutes=settings.reclaim_interval_minutes),
        id="stale_reclaim",
        name="stale claim cleanup",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Scheduled stale_reclaim every {settings.reclaim_interval_minutes}m")


async def start_scheduler() -> None:
    """Start the scheduler."""
    sched = get_scheduler()
    if not sched.running:
        sched.start()
        logger.info("Scheduler started")


async def stop_scheduler() -> None:
    """Stop the scheduler gracefully."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")
