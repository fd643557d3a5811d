# portal/services/scheduler.py
"""
Daily post-closing job.

Runs ``CronService.run_scheduled_tasks`` at POST_CLOSE_HOUR:POST_CLOSE_MINUTE
in CRON_TIMEZONE (00:05 Asia/Kolkata by default).
"""
import logging

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from portal.config import settings
from portal.database import SessionLocal
from portal.services import get_services

logger = logging.getLogger(__name__)

JOB_ID = "close_expired_posts"

scheduler = AsyncIOScheduler(
    timezone=settings.CRON_TIMEZONE,
    job_defaults={
        "coalesce": True,  # Collapse missed runs into one
        "max_instances": 1,
        "misfire_grace_time": 3600,
    },
)


def scheduler_listener(event):
    if event.exception:
        logger.error(f"Job '{event.job_id}' failed with exception: {event.exception}")
    else:
        logger.info(f"Job '{event.job_id}' executed successfully")


scheduler.add_listener(scheduler_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)


def run_post_close_job():
    """Sync job; APScheduler runs it in its thread pool executor."""
    db = SessionLocal()
    try:
        result = get_services().cron.run_scheduled_tasks(db)
        logger.info(f"CRON: Scheduled run finished: {result}")
        return result
    finally:
        db.close()


def start_scheduler():
    if not settings.CRON_ENABLED:
        logger.info("CRON: Scheduler disabled")
        return False
    if scheduler.running:
        return False

    scheduler.add_job(
        run_post_close_job,
        CronTrigger(hour=settings.POST_CLOSE_HOUR, minute=settings.POST_CLOSE_MINUTE,
                    timezone=settings.CRON_TIMEZONE),
        id=JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"CRON: Post closing scheduled daily at {settings.POST_CLOSE_HOUR:02d}:{settings.POST_CLOSE_MINUTE:02d} "
        f"({settings.CRON_TIMEZONE})"
    )
    return True


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("CRON: Scheduler stopped")
