"""Celery worker configuration and tasks."""

import asyncio
import logging
from datetime import timedelta

from celery import Celery, Task
from sqlalchemy.pool import NullPool

from digest_api.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "digest_worker",
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
    task_time_limit=300,
    task_soft_time_limit=240,
    worker_prefetch_multiplier=1,  # Fetch one task at a time
    task_acks_late=True,  # Ack after task completes
    task_reject_on_worker_lost=True,
    task_default_queue="default",
    task_queues={
        "default": {"exchange": "default", "routing_key": "default"},
        "reports": {"exchange": "reports", "routing_key": "reports"},
    },
    task_routes={
        "digest_api.worker.complete_report": {"queue": "reports"},
    },
    beat_schedule={
        "fail-stale-reports": {
            "task": "digest_api.worker.fail_stale_reports",
            "schedule": 3600.0,  # Every hour
        },
    },
)


class BaseTask(Task):
    """Base task with retry configuration."""

    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
    max_retries = 3


class CompleteReportTask(BaseTask):
    """Marks the report failed once retries are exhausted."""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        report_id = args[0] if args else kwargs.get("report_id")
        logger.error(f"Completion of {report_id} failed permanently: {exc}")
        try:
            asyncio.run(_with_service(lambda service: service.fail(report_id)))
        except Exception as e:
            logger.error(f"Could not mark {report_id} failed: {e}")


async def _with_service(action):
    """Run ``action(service)`` against a fresh engine bound to this event loop."""
    from digest_api.db.session import create_engine
    from digest_api.services.report_service import build_report_service
    from digest_api.services.scheduler import CeleryReportScheduler

    engine = create_engine(poolclass=NullPool)
    try:
        service = build_report_service(
            settings,
            engine,
            scheduler=CeleryReportScheduler(settings.report_completion_delay_seconds),
        )
        return await action(service)
    finally:
        await engine.dispose()


@celery_app.task(bind=True, base=CompleteReportTask, name="digest_api.worker.complete_report")
def complete_report(self, report_id: str) -> dict:
    """
    Complete a report: summarize, mark completed and deliver.

    Redelivery is safe: completion only acts on reports still processing.
    """
    logger.info(f"Completing report {report_id} (attempt {self.request.retries + 1})")
    asyncio.run(_with_service(lambda service: service.complete(report_id)))
    return {"report_id": report_id}


@celery_app.task(name="digest_api.worker.fail_stale_reports")
def fail_stale_reports() -> dict:
    """Periodic task failing reports stuck in processing and email deliveries stuck in queued."""
    max_age = timedelta(minutes=settings.report_stale_after_minutes)

    async def sweep(service) -> dict:
        return {
            "reports": await service.fail_stale(max_age),
            "deliveries": await service.fail_undelivered(max_age),
        }

    failed = asyncio.run(_with_service(sweep))
    logger.info(
        f"Marked {failed['reports']} stale reports and {failed['deliveries']} stuck deliveries as failed"
    )
    return failed
