"""Database models for the digest report service."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from digest_api.db.session import Base


class ReportStatus(str, enum.Enum):
    """Processing status of a report."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ReportSource(str, enum.Enum):
    YOUTUBE = "youtube"
    PODCAST = "podcast"
    ARTICLE = "article"


class ReportFormat(str, enum.Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    BULLET_POINTS = "bullet_points"


class DeliveryMethod(str, enum.Enum):
    EMAIL = "email"
    WEBHOOK = "webhook"
    NONE = "none"


class DeliveryStatus(str, enum.Enum):
    """Outcome of a delivery attempt, separate from the report status."""

    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
    NONE = "none"


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    # Persist enum values (not member names) so rows match the migration
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


class Report(Base):
    """A requested digest, tracked from submission to delivery."""

    __tablename__ = "reports"

    report_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    status: Mapped[ReportStatus] = mapped_column(
        _enum_column(ReportStatus), default=ReportStatus.PROCESSING, index=True
    )

    # Source
    source: Mapped[ReportSource] = mapped_column(_enum_column(ReportSource))
    channel_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    video_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    format: Mapped[ReportFormat] = mapped_column(_enum_column(ReportFormat))
    language: Mapped[str] = mapped_column(Text)

    # Summary (set on completion)
    summary_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary_points: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    word_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    full_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Delivery
    delivery_method: Mapped[DeliveryMethod] = mapped_column(_enum_column(DeliveryMethod))
    delivery_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # Email or webhook URL
    delivery_status: Mapped[DeliveryStatus] = mapped_column(_enum_column(DeliveryStatus))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class LegacyReport(Base):
    """Record behind the legacy /api/report/{id} endpoints."""

    __tablename__ = "legacy_reports"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String(40))  # ISO-8601 as supplied by the client
