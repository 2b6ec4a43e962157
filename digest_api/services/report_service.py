"""Report lifecycle: creation, background completion and status queries."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from digest_api.config import Settings
from digest_api.db.models import DeliveryStatus, Report, ReportStatus
from digest_api.db.session import create_session_maker
from digest_api.errors import PersistenceError, ValidationError
from digest_api.schemas.schemas import ReportCreateRequest, ReportResponse, ReportSummary
from digest_api.services.delivery import DeliveryDispatcher
from digest_api.services.email import SendGridEmailSender
from digest_api.services.report_store import ReportStore, utc_now
from digest_api.services.scheduler import (
    CeleryReportScheduler,
    InProcessReportScheduler,
    ReportScheduler,
)
from digest_api.services.summarizer import PlaceholderSummarizer, Summarizer

logger = logging.getLogger(__name__)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format as ISO-8601 UTC with millisecond precision, e.g. 2025-01-05T10:15:00.000Z."""
    if value is None:
        return None
    if value.tzinfo is None:
        # SQLite drops tzinfo; everything is stored in UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_create_request(request: ReportCreateRequest) -> None:
    """
    Cross-field checks that the request schema cannot express.

    Raises:
        ValidationError: On the first problem found
    """
    if request.source == "youtube" and not request.video_id and not request.url:
        raise ValidationError("YouTube source requires either video_id or url")

    delivery = request.delivery
    if delivery.method == "email" and not delivery.address:
        raise ValidationError("Email delivery requires address")
    if delivery.method == "webhook" and not delivery.target:
        raise ValidationError("Webhook delivery requires webhook_url")


class ReportService:
    """
    Drives a report through ``processing -> completed | failed``.

    Collaborators are injected so tests and the worker can build isolated
    instances.
    """

    def __init__(
        self,
        store: ReportStore,
        dispatcher: DeliveryDispatcher,
        scheduler: ReportScheduler,
        summarizer: Optional[Summarizer] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.scheduler = scheduler
        self.summarizer = summarizer or PlaceholderSummarizer()

    async def create(self, request: ReportCreateRequest) -> Report:
        """
        Validate, persist and schedule a new report.

        Returns:
            The stored report, still in the processing state
        """
        validate_create_request(request)

        delivery = request.delivery
        report_id = await self.store.insert(
            source=request.source,
            format=request.format,
            language=request.language,
            channel_id=request.channel_id,
            video_id=request.video_id,
            url=request.url,
            delivery_method=delivery.method,
            delivery_address=None if delivery.method == "none" else delivery.target,
        )
        logger.info(f"Created report {report_id} (source={request.source}, delivery={delivery.method})")

        report = await self.store.get(report_id)
        try:
            self.scheduler.schedule(report_id)
        except Exception as e:
            logger.error(f"Failed to schedule completion of {report_id}: {e}")
            await self.fail(report_id)
            raise PersistenceError("Failed to schedule report") from e
        return report

    async def complete(self, report_id: str) -> None:
        """
        Produce the summary and deliver it. Safe to call more than once.

        Only the call that moves the report out of ``processing`` triggers
        delivery; later calls are no-ops.
        """
        report = await self.store.get(report_id)
        if report is None:
            logger.warning(f"Report {report_id} not found for completion, skipping")
            return
        if report.status != ReportStatus.PROCESSING:
            logger.info(f"Report {report_id} already {report.status.value}, skipping completion")
            return

        try:
            summary = await self.summarizer.summarize(report)
        except Exception as e:
            logger.exception(f"Summarization failed for {report_id}: {e}")
            await self.fail(report_id)
            return

        moved = await self.store.transition(
            report_id,
            ReportStatus.PROCESSING,
            status=ReportStatus.COMPLETED,
            summary_title=summary.title,
            summary_points=summary.key_points,
            word_count=summary.word_count,
            full_text=summary.full_text,
            completed_at=utc_now(),
        )
        if not moved:
            logger.info(f"Report {report_id} was completed concurrently, skipping delivery")
            return
        logger.info(f"Report {report_id} completed")

        report = await self.store.get(report_id)
        if report is None:
            logger.warning(f"Report {report_id} disappeared before delivery")
            return

        try:
            outcome = await self.dispatcher.dispatch(report)
            delivery_status, reason = outcome.status, outcome.reason
        except Exception as e:
            logger.exception(f"Delivery dispatch crashed for {report_id}")
            delivery_status, reason = DeliveryStatus.FAILED, str(e)

        if delivery_status == DeliveryStatus.FAILED:
            logger.error(f"Delivery failed for {report_id}: {reason}")
        if delivery_status != report.delivery_status:
            await self.store.update(report_id, delivery_status=delivery_status)

    async def get(self, report_id: str) -> Optional[ReportResponse]:
        """Client-visible projection of a report, or None if unknown."""
        report = await self.store.get(report_id)
        if report is None:
            return None
        return to_response(report)

    async def fail(self, report_id: str) -> bool:
        """Move a report from processing to failed; False if it already left processing."""
        moved = await self.store.transition(
            report_id, ReportStatus.PROCESSING, status=ReportStatus.FAILED
        )
        if moved:
            logger.warning(f"Report {report_id} marked failed")
        return moved

    async def fail_stale(self, max_age: timedelta) -> int:
        """Mark reports stuck in processing for longer than ``max_age`` as failed."""
        cutoff = utc_now() - max_age
        failed = 0
        for report_id in await self.store.list_stale(cutoff):
            if await self.fail(report_id):
                failed += 1
        return failed

    async def fail_undelivered(self, max_age: timedelta) -> int:
        """
        Mark email deliveries still queued long after completion as failed.

        Covers a worker lost between completion and the delivery status write;
        redelivered jobs skip completed reports and would leave them queued.
        """
        cutoff = utc_now() - max_age
        failed = 0
        for report_id in await self.store.list_undelivered(cutoff):
            moved = await self.store.transition_delivery(
                report_id, DeliveryStatus.QUEUED, DeliveryStatus.FAILED
            )
            if moved:
                logger.error(f"Email delivery for {report_id} never finished, marked failed")
                failed += 1
        return failed


def summary_of(report: Report) -> Optional[ReportSummary]:
    if report.status != ReportStatus.COMPLETED or report.summary_title is None:
        return None
    return ReportSummary(
        title=report.summary_title,
        key_points=list(report.summary_points or []),
        word_count=report.word_count or 0,
        full_text=report.full_text,
    )


def to_response(report: Report) -> ReportResponse:
    return ReportResponse(
        report_id=report.report_id,
        status=report.status.value,
        source=report.source.value,
        format=report.format.value,
        language=report.language,
        summary=summary_of(report),
        delivery_status=report.delivery_status.value,
        created_at=format_timestamp(report.created_at),
        completed_at=format_timestamp(report.completed_at),
    )


def build_email_sender(settings: Settings) -> SendGridEmailSender:
    return SendGridEmailSender(
        api_key=settings.sendgrid_api_key,
        from_email=settings.sendgrid_from_email,
        from_name=settings.sendgrid_from_name,
        api_url=settings.sendgrid_api_url,
        timeout_seconds=settings.email_timeout_seconds,
    )


def build_report_service(
    settings: Settings,
    engine: AsyncEngine,
    scheduler: Optional[ReportScheduler] = None,
) -> ReportService:
    """Wire a ReportService from settings and an engine."""
    if scheduler is None:
        if settings.report_scheduler == "inprocess":
            scheduler = InProcessReportScheduler(settings.report_completion_delay_seconds)
        else:
            scheduler = CeleryReportScheduler(settings.report_completion_delay_seconds)

    service = ReportService(
        store=ReportStore(create_session_maker(engine)),
        dispatcher=DeliveryDispatcher(
            build_email_sender(settings),
            max_attempts=settings.email_max_attempts,
            retry_delay_seconds=settings.email_retry_delay_seconds,
        ),
        scheduler=scheduler,
    )
    if isinstance(scheduler, InProcessReportScheduler):
        scheduler.bind(service.complete)
    return service
