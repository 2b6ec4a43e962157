"""Tests for report persistence."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from digest_api.db.models import DeliveryMethod, DeliveryStatus, ReportSource, ReportStatus
from digest_api.errors import NotFoundError
from digest_api.services.report_store import generate_report_id, utc_now


def insert_kwargs(**overrides) -> dict:
    kwargs = dict(
        source="youtube",
        format="summary",
        language="en",
        video_id="abc123",
        delivery_method="none",
    )
    kwargs.update(overrides)
    return kwargs


def test_generate_report_id_format():
    report_id = generate_report_id(datetime(2025, 1, 5, 10, 15, tzinfo=timezone.utc))
    assert re.fullmatch(r"rpt_20250105_[a-z0-9]{6}", report_id)


@pytest.mark.asyncio
async def test_insert_starts_processing(store):
    report_id = await store.insert(**insert_kwargs())

    report = await store.get(report_id)
    assert report.status == ReportStatus.PROCESSING
    assert report.source == ReportSource.YOUTUBE
    assert report.delivery_method == DeliveryMethod.NONE
    assert report.delivery_status == DeliveryStatus.NONE
    assert report.summary_title is None
    assert report.completed_at is None


@pytest.mark.asyncio
async def test_insert_with_delivery_is_queued(store):
    report_id = await store.insert(
        **insert_kwargs(delivery_method="email", delivery_address="reader@example.com")
    )

    report = await store.get(report_id)
    assert report.delivery_status == DeliveryStatus.QUEUED
    assert report.delivery_address == "reader@example.com"


@pytest.mark.asyncio
async def test_get_unknown_returns_none(store):
    assert await store.get("rpt_20250101_nothere") is None


@pytest.mark.asyncio
async def test_update_touches_only_given_fields(store):
    report_id = await store.insert(**insert_kwargs(delivery_method="webhook", delivery_address="https://x"))

    await store.update(report_id, delivery_status=DeliveryStatus.FAILED)

    report = await store.get(report_id)
    assert report.delivery_status == DeliveryStatus.FAILED
    assert report.status == ReportStatus.PROCESSING
    assert report.delivery_address == "https://x"


@pytest.mark.asyncio
async def test_update_unknown_raises(store):
    with pytest.raises(NotFoundError):
        await store.update("rpt_20250101_nothere", delivery_status=DeliveryStatus.SENT)


@pytest.mark.asyncio
async def test_transition_only_from_expected_status(store):
    report_id = await store.insert(**insert_kwargs())

    assert await store.transition(
        report_id, ReportStatus.PROCESSING, status=ReportStatus.COMPLETED, completed_at=utc_now()
    )
    assert not await store.transition(
        report_id, ReportStatus.PROCESSING, status=ReportStatus.FAILED
    )

    report = await store.get(report_id)
    assert report.status == ReportStatus.COMPLETED
    assert report.completed_at is not None


@pytest.mark.asyncio
async def test_list_stale(store):
    processing = await store.insert(**insert_kwargs())
    completed = await store.insert(**insert_kwargs())
    await store.transition(completed, ReportStatus.PROCESSING, status=ReportStatus.COMPLETED)

    assert await store.list_stale(utc_now() - timedelta(hours=1)) == []
    assert await store.list_stale(utc_now() + timedelta(minutes=1)) == [processing]


@pytest.mark.asyncio
async def test_summary_points_round_trip(store):
    report_id = await store.insert(**insert_kwargs())
    points = ["one", "two", "three"]

    await store.update(report_id, summary_title="Title", summary_points=points, word_count=3)

    report = await store.get(report_id)
    assert report.summary_points == points
    assert report.word_count == 3


@pytest.mark.asyncio
async def test_legacy_upsert_creates_and_updates(store):
    assert await store.get_legacy("r-1") is None

    created = await store.upsert_legacy("r-1")
    assert created.title is None
    assert created.created_at.endswith("Z")

    updated = await store.upsert_legacy("r-1", title="New title")
    assert updated.title == "New title"
    assert updated.created_at == created.created_at


@pytest.mark.asyncio
async def test_legacy_upsert_overwrites_created_at(store):
    await store.upsert_legacy("r-1", title="Title", created_at="2025-01-05T10:15:00Z")

    record = await store.get_legacy("r-1")
    assert record.title == "Title"
    assert record.created_at == "2025-01-05T10:15:00Z"


@pytest.mark.asyncio
async def test_list_undelivered_only_queued_email(store):
    queued_email = await store.insert(
        **insert_kwargs(delivery_method="email", delivery_address="reader@example.com")
    )
    queued_webhook = await store.insert(
        **insert_kwargs(delivery_method="webhook", delivery_address="https://x")
    )
    processing_email = await store.insert(
        **insert_kwargs(delivery_method="email", delivery_address="reader@example.com")
    )
    for report_id in (queued_email, queued_webhook):
        await store.transition(
            report_id, ReportStatus.PROCESSING, status=ReportStatus.COMPLETED, completed_at=utc_now()
        )

    cutoff = utc_now() + timedelta(minutes=1)
    assert await store.list_undelivered(cutoff) == [queued_email]
    assert processing_email not in await store.list_undelivered(cutoff)


@pytest.mark.asyncio
async def test_transition_delivery_only_from_expected(store):
    report_id = await store.insert(
        **insert_kwargs(delivery_method="email", delivery_address="reader@example.com")
    )

    assert await store.transition_delivery(report_id, DeliveryStatus.QUEUED, DeliveryStatus.SENT)
    assert not await store.transition_delivery(
        report_id, DeliveryStatus.QUEUED, DeliveryStatus.FAILED
    )
    assert (await store.get(report_id)).delivery_status == DeliveryStatus.SENT
