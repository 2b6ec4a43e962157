"""Report persistence: the single source of truth for report state."""

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from digest_api.db.models import (
    DeliveryMethod,
    DeliveryStatus,
    LegacyReport,
    Report,
    ReportFormat,
    ReportSource,
    ReportStatus,
)
from digest_api.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

REPORT_ID_ALPHABET = string.ascii_lowercase + string.digits
MAX_ID_ATTEMPTS = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_report_id(now: Optional[datetime] = None) -> str:
    """
    Generate a report identifier.

    Format: rpt_YYYYMMDD_xxxxxx (6 random lowercase alphanumerics)
    """
    now = now or utc_now()
    suffix = "".join(secrets.choice(REPORT_ID_ALPHABET) for _ in range(6))
    return f"rpt_{now:%Y%m%d}_{suffix}"


class ReportStore:
    """Persists report rows. Every operation runs in its own short session."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def insert(
        self,
        *,
        source: str,
        format: str,
        language: str,
        delivery_method: str,
        delivery_address: Optional[str] = None,
        channel_id: Optional[str] = None,
        video_id: Optional[str] = None,
        url: Optional[str] = None,
    ) -> str:
        """
        Persist a new report in the processing state.

        Returns:
            The allocated report_id

        Raises:
            PersistenceError: If the row could not be written
        """
        method = DeliveryMethod(delivery_method)
        delivery_status = DeliveryStatus.NONE if method == DeliveryMethod.NONE else DeliveryStatus.QUEUED

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            created_at = utc_now()
            report_id = generate_report_id(created_at)
            report = Report(
                report_id=report_id,
                status=ReportStatus.PROCESSING,
                source=ReportSource(source),
                channel_id=channel_id,
                video_id=video_id,
                url=url,
                format=ReportFormat(format),
                language=language,
                delivery_method=method,
                delivery_address=delivery_address,
                delivery_status=delivery_status,
                created_at=created_at,
            )
            try:
                async with self._session_maker() as db:
                    db.add(report)
                    await db.commit()
                return report_id
            except IntegrityError:
                logger.warning(f"Report id collision on {report_id} (attempt {attempt})")
            except SQLAlchemyError as e:
                logger.error(f"Failed to insert report: {e}")
                raise PersistenceError("Failed to create report") from e

        raise PersistenceError("Failed to allocate a unique report id")

    async def get(self, report_id: str) -> Optional[Report]:
        """Read-only lookup; None if the id is unknown."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(select(Report).where(Report.report_id == report_id))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read report {report_id}: {e}")
            raise PersistenceError("Failed to read report") from e

    async def update(self, report_id: str, **fields: Any) -> None:
        """
        Apply a partial update touching only the given columns.

        Raises:
            NotFoundError: If the report does not exist
            PersistenceError: If the write failed
        """
        if not fields:
            return
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    update(Report).where(Report.report_id == report_id).values(**fields)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update report {report_id}: {e}")
            raise PersistenceError("Failed to update report") from e

        if result.rowcount == 0:
            raise NotFoundError(f"Report {report_id} not found")

    async def transition(
        self,
        report_id: str,
        expected: ReportStatus,
        **fields: Any,
    ) -> bool:
        """
        Atomically update a report only if its status is still ``expected``.

        Returns:
            True if this call moved the row, False if another writer already did
            (or the report does not exist)
        """
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    update(Report)
                    .where(Report.report_id == report_id, Report.status == expected)
                    .values(**fields)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to transition report {report_id}: {e}")
            raise PersistenceError("Failed to update report") from e

        return result.rowcount == 1

    async def list_stale(self, cutoff: datetime) -> list[str]:
        """Ids of reports still processing that were created before ``cutoff``."""
        async with self._session_maker() as db:
            result = await db.execute(
                select(Report.report_id).where(
                    Report.status == ReportStatus.PROCESSING,
                    Report.created_at < cutoff,
                )
            )
            return list(result.scalars().all())

    async def list_undelivered(self, cutoff: datetime) -> list[str]:
        """Ids of completed email reports still queued for delivery since before ``cutoff``."""
        async with self._session_maker() as db:
            result = await db.execute(
                select(Report.report_id).where(
                    Report.status == ReportStatus.COMPLETED,
                    Report.delivery_method == DeliveryMethod.EMAIL,
                    Report.delivery_status == DeliveryStatus.QUEUED,
                    Report.completed_at < cutoff,
                )
            )
            return list(result.scalars().all())

    async def transition_delivery(
        self,
        report_id: str,
        expected: DeliveryStatus,
        delivery_status: DeliveryStatus,
    ) -> bool:
        """Set ``delivery_status`` only if it is still ``expected``."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(
                    update(Report)
                    .where(Report.report_id == report_id, Report.delivery_status == expected)
                    .values(delivery_status=delivery_status)
                )
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update delivery status of {report_id}: {e}")
            raise PersistenceError("Failed to update report") from e

        return result.rowcount == 1

    # ============== Legacy records ==============

    async def get_legacy(self, legacy_id: str) -> Optional[LegacyReport]:
        async with self._session_maker() as db:
            return await db.get(LegacyReport, legacy_id)

    async def upsert_legacy(
        self,
        legacy_id: str,
        title: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> LegacyReport:
        """Create or update a legacy record; createdAt defaults to now on first write."""
        try:
            async with self._session_maker() as db:
                record = await db.get(LegacyReport, legacy_id)
                if record is None:
                    record = LegacyReport(id=legacy_id)
                    db.add(record)
                if title is not None:
                    record.title = title
                if created_at is not None:
                    record.created_at = created_at
                if not record.created_at:
                    record.created_at = utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")
                await db.commit()
                return record
        except SQLAlchemyError as e:
            logger.error(f"Failed to upsert legacy report {legacy_id}: {e}")
            raise PersistenceError("Failed to save report") from e
