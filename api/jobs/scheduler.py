"""
APScheduler configuration.

Jobs run inside the API process on the asyncio loop, in the business
timezone (Asia/Kolkata by default).
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from config import settings

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(
    jobstores={'default': MemoryJobStore()},
    executors={'default': AsyncIOExecutor()},
    job_defaults={
        'coalesce': True,
        'max_instances': 1,
        'misfire_grace_time': 300,
    },
    timezone=settings.scheduler_timezone,
)


async def run_cod_cleanup():
    from jobs.subscription_jobs import cancel_stale_cod_orders

    try:
        await cancel_stale_cod_orders()
    except Exception:
        logger.exception("Job 'cancel_stale_cod_orders' failed")


def start_scheduler():
    """Register jobs and start the scheduler (idempotent)."""
    if scheduler.running:
        return

    scheduler.add_job(
        run_cod_cleanup,
        'cron',
        hour=23,
        minute=20,
        id='cancel_stale_cod_orders',
        name='Cancel unpaid COD subscriptions',
        replace_existing=True,
    )
    scheduler.start()

    for job in scheduler.get_jobs():
        logger.info("Scheduled job: %s - Next run: %s", job.name, job.next_run_time)


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background job scheduler stopped")


def get_job_status():
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]
