"""Scheduler for planning notification jobs."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import constants
from src.core.scheduler_tracker import retry_job_with_backoff
from src.models.service_models import SweepResult
from src.modules.planning.scheduler_jobs import run_planning_notifications


logger = logging.getLogger(__name__)

PLANNING_NOTIFICATIONS_JOB = "planning_notifications"

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def run_manual_check() -> SweepResult:
    """Run one notification sweep immediately, outside the cron schedule."""
    logger.info("Running manual planning notification check")
    return await run_planning_notifications()


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    # Arbitrary HH:MM settings are matched against a window one minute wider than the tick
    scheduler.add_job(
        retry_job_with_backoff,
        trigger=CronTrigger(minute=f"*/{constants.SCHEDULER_TICK_MINUTES}"),
        args=[run_planning_notifications, PLANNING_NOTIFICATIONS_JOB],
        id=PLANNING_NOTIFICATIONS_JOB,
        name="Send Planning Notifications",
        replace_existing=True,
    )
    logger.info(f"Scheduled planning notifications job: every {constants.SCHEDULER_TICK_MINUTES} minutes")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
