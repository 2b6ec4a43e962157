"""Delivery dispatcher: routes completed reports to their delivery method."""

import logging
from dataclasses import dataclass
from typing import Optional

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from digest_api.db.models import DeliveryMethod, DeliveryStatus, Report
from digest_api.errors import DeliveryError
from digest_api.services.email import DigestEmail, SendGridEmailSender

logger = logging.getLogger(__name__)


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, DeliveryError) and error.retryable


@dataclass
class DeliveryOutcome:
    status: DeliveryStatus
    reason: Optional[str] = None


class DeliveryDispatcher:
    """
    Delivers a completed report. Transport failures become a failed outcome.

    Transient email failures are retried up to ``max_attempts`` times with
    exponential backoff starting at ``retry_delay_seconds``.
    """

    def __init__(
        self,
        email_sender: SendGridEmailSender,
        max_attempts: int = 3,
        retry_delay_seconds: float = 2.0,
    ):
        self.email_sender = email_sender
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds

    async def dispatch(self, report: Report) -> DeliveryOutcome:
        if report.delivery_method == DeliveryMethod.EMAIL:
            return await self._deliver_email(report)
        if report.delivery_method == DeliveryMethod.WEBHOOK:
            return self._deliver_webhook(report)
        return DeliveryOutcome(DeliveryStatus.NONE)

    async def _deliver_email(self, report: Report) -> DeliveryOutcome:
        if not report.delivery_address:
            logger.error(f"Email delivery for {report.report_id} has no address")
            return DeliveryOutcome(DeliveryStatus.FAILED, "missing delivery address")

        data = DigestEmail(
            title=report.summary_title or "",
            key_points=list(report.summary_points or []),
            word_count=report.word_count or 0,
            full_text=report.full_text,
            source=report.source.value,
            video_id=report.video_id,
            channel_id=report.channel_id,
            url=report.url,
            language=report.language,
            report_id=report.report_id,
        )

        # Transient SendGrid failures only
        @retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.retry_delay_seconds,
                min=self.retry_delay_seconds,
                max=self.retry_delay_seconds * 8,
            ),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def _send_with_retry() -> None:
            await self.email_sender.send(report.delivery_address, data)

        try:
            await _send_with_retry()
        except DeliveryError as e:
            logger.error(f"Email delivery for {report.report_id} failed: {e.message}")
            return DeliveryOutcome(DeliveryStatus.FAILED, e.message)

        logger.info(f"Email delivery for {report.report_id}: sent")
        return DeliveryOutcome(DeliveryStatus.SENT)

    def _deliver_webhook(self, report: Report) -> DeliveryOutcome:
        # TODO: POST the summary payload once a webhook transport is added
        logger.info(
            f"Webhook delivery for {report.report_id} left queued "
            f"(no webhook transport), target={report.delivery_address}"
        )
        return DeliveryOutcome(DeliveryStatus.QUEUED, "webhook transport not implemented")
