"""Celery worker configuration and the periodic scheduler task."""

import asyncio
import logging

from celery import Celery

from gen_scheduler.config import get_settings

settings = get_settings()

logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "generation_scheduler",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,  # Fetch one task at a time
    task_default_queue="scheduler",
    beat_schedule={
        "run-scheduler-pass": {
            "task": "gen_scheduler.worker.run_scheduler_pass",
            "schedule": settings.scheduler_interval_seconds,
            # A tick that waited longer than one interval is superseded by the next
            "options": {"expires": settings.scheduler_interval_seconds},
        },
    },
)


@celery_app.task(name="gen_scheduler.worker.run_scheduler_pass")
def run_scheduler_pass() -> dict:
    """
    Run one scheduler pass.

    Failed masters are picked up again by later passes, so the task itself
    is never retried.

    Returns:
        The pass summary as a dict
    """
    from gen_scheduler.db.session import engine
    from gen_scheduler.schemas.schemas import SchedulerErrorResponse
    from gen_scheduler.services.scheduler import Scheduler

    async def run_pass():
        try:
            return await Scheduler.from_settings(settings).run_pass()
        finally:
            # Pooled connections belong to this event loop
            await engine.dispose()

    result = asyncio.run(run_pass())

    if isinstance(result, SchedulerErrorResponse):
        logger.error(f"CRON ERROR: {result.error}")

    return result.model_dump(exclude_none=True)
