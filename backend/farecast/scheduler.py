"""
APScheduler setup for background housekeeping.

Pruning runs in a worker thread with its own session so it never holds up
searches on the event loop.
"""

import asyncio
import logging
import os
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.jobstores.memory import MemoryJobStore

from farecast.config import get_settings
from farecast.services.housekeeping import run_housekeeping

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None

settings = get_settings()


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the global scheduler instance."""
    global scheduler
    if scheduler is None:
        tz = os.environ.get('TZ', 'UTC')
        logger.info(f"Scheduler using timezone: {tz}")

        scheduler = AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            timezone=tz
        )
        _setup_scheduled_jobs(scheduler)

    return scheduler


def _setup_scheduled_jobs(sched: AsyncIOScheduler) -> None:
    sched.add_job(
        housekeeping_job,
        trigger=IntervalTrigger(hours=settings.housekeeping_interval_hours),
        id='housekeeping',
        name='Prune price history and stale seasonal buckets',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Scheduled housekeeping every {settings.housekeeping_interval_hours}h")


async def housekeeping_job() -> None:
    try:
        await asyncio.to_thread(run_housekeeping)
    except Exception as e:
        logger.error(f"Housekeeping job failed: {e}")


def start_scheduler() -> None:
    sched = get_scheduler()
    if not sched.running:
        sched.start()


def stop_scheduler() -> None:
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
    scheduler = None
