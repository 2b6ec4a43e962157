"""Tests for API endpoints."""

import re

import pytest
from httpx import AsyncClient

from digest_api.api.deps import get_report_service
from digest_api.errors import PersistenceError
from digest_api.main import app
from digest_api.services.report_service import ReportService
from digest_api.services.report_store import ReportStore
from helpers import report_payload

REPORT_ID_PATTERN = re.compile(r"^rpt_\d{8}_[a-z0-9]{6}$")


@pytest.mark.asyncio
async def test_healthz_is_public(client: AsyncClient):
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_openapi_yaml_is_public(client: AsyncClient):
    response = await client.get("/openapi.yaml")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/yaml")
    assert "/api/reports" in response.text


@pytest.mark.asyncio
async def test_create_report_without_auth(client: AsyncClient):
    response = await client.post("/api/reports", json=report_payload())
    assert response.status_code == 401
    assert response.json() == {"message": "Unauthorized"}


@pytest.mark.asyncio
async def test_get_report_with_wrong_token(client: AsyncClient):
    response = await client.get(
        "/api/reports/rpt_20250101_abcdef",
        headers={"Authorization": "Bearer not-on-the-list"},
    )
    assert response.status_code == 401
    assert response.json() == {"message": "Unauthorized"}


@pytest.mark.asyncio
async def test_legacy_get_without_auth(client: AsyncClient):
    response = await client.get("/api/report/r-1")
    assert response.status_code == 401
    assert response.json()["message"] == "Unauthorized"


@pytest.mark.asyncio
async def test_create_report(client: AsyncClient, auth_headers: dict, scheduler):
    response = await client.post("/api/reports", headers=auth_headers, json=report_payload())
    assert response.status_code == 201
    data = response.json()
    assert REPORT_ID_PATTERN.match(data["report_id"])
    assert data["status"] == "processing"
    assert data["delivery_status"] == "none"
    assert "summary" not in data
    assert data["timestamp"].endswith("Z")
    assert scheduler.scheduled == [data["report_id"]]


@pytest.mark.asyncio
async def test_report_ids_are_unique(client: AsyncClient, auth_headers: dict):
    ids = set()
    for _ in range(5):
        response = await client.post("/api/reports", headers=auth_headers, json=report_payload())
        assert response.status_code == 201
        ids.add(response.json()["report_id"])
    assert len(ids) == 5


@pytest.mark.asyncio
async def test_create_with_token_cookie(client: AsyncClient):
    client.cookies.set("digest-token", "test-token")
    response = await client.post("/api/reports", json=report_payload())
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_get_report_immediately_after_create(client: AsyncClient, auth_headers: dict):
    created = await client.post(
        "/api/reports",
        headers=auth_headers,
        json=report_payload(delivery={"method": "webhook", "webhook_url": "https://hooks.example.com/x"}),
    )
    report_id = created.json()["report_id"]
    assert created.json()["delivery_status"] == "queued"

    response = await client.get(f"/api/reports/{report_id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["report_id"] == report_id
    assert data["status"] == "processing"
    assert data["source"] == "youtube"
    assert data["format"] == "summary"
    assert data["language"] == "en"
    assert data["delivery_status"] == "queued"
    assert "summary" not in data
    assert "completed_at" not in data


@pytest.mark.asyncio
async def test_get_report_after_completion(client: AsyncClient, auth_headers: dict, report_service):
    created = await client.post("/api/reports", headers=auth_headers, json=report_payload())
    report_id = created.json()["report_id"]

    await report_service.complete(report_id)

    response = await client.get(f"/api/reports/{report_id}", headers=auth_headers)
    data = response.json()
    assert data["status"] == "completed"
    assert data["summary"]["title"]
    assert len(data["summary"]["key_points"]) > 0
    assert data["completed_at"] >= data["created_at"]
    assert data["delivery_status"] == "none"


@pytest.mark.asyncio
async def test_get_nonexistent_report(client: AsyncClient, auth_headers: dict):
    response = await client.get("/api/reports/rpt_20250101_zzzzzz", headers=auth_headers)
    assert response.status_code == 404
    assert "rpt_20250101_zzzzzz" in response.json()["message"]


@pytest.mark.asyncio
async def test_youtube_requires_video_id_or_url(client: AsyncClient, auth_headers: dict, scheduler):
    payload = report_payload()
    del payload["video_id"]
    response = await client.post("/api/reports", headers=auth_headers, json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "YouTube source requires either video_id or url"
    assert scheduler.scheduled == []


@pytest.mark.asyncio
async def test_youtube_accepts_url(client: AsyncClient, auth_headers: dict):
    payload = report_payload(url="https://youtube.com/watch?v=abc")
    del payload["video_id"]
    response = await client.post("/api/reports", headers=auth_headers, json=payload)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_podcast_needs_no_video_id(client: AsyncClient, auth_headers: dict):
    payload = report_payload(source="podcast")
    del payload["video_id"]
    response = await client.post("/api/reports", headers=auth_headers, json=payload)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_email_delivery_requires_address(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/reports",
        headers=auth_headers,
        json=report_payload(delivery={"method": "email"}),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Email delivery requires address"


@pytest.mark.asyncio
async def test_webhook_delivery_requires_url(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/reports",
        headers=auth_headers,
        json=report_payload(delivery={"method": "webhook"}),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Webhook delivery requires webhook_url"


@pytest.mark.asyncio
async def test_missing_required_fields(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/reports",
        headers=auth_headers,
        json={"source": "article", "url": "https://example.com/post"},
    )
    assert response.status_code == 400
    message = response.json()["message"]
    assert message.startswith("Missing required fields:")
    for field in ("format", "language", "delivery"):
        assert field in message


@pytest.mark.asyncio
async def test_invalid_source_is_rejected(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/reports",
        headers=auth_headers,
        json=report_payload(source="tiktok"),
    )
    assert response.status_code == 400
    assert "source" in response.json()["message"]


@pytest.mark.asyncio
async def test_legacy_get_unknown_returns_null_report(client: AsyncClient, auth_headers: dict):
    response = await client.get("/api/report/r-1", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "r-1"
    assert data["report"] is None
    assert data["message"]


@pytest.mark.asyncio
async def test_legacy_upsert_then_get(client: AsyncClient, auth_headers: dict):
    saved = await client.post(
        "/api/report/r-1",
        headers=auth_headers,
        json={"title": "Updated digest title"},
    )
    assert saved.status_code == 200
    assert saved.json()["ok"] is True
    assert saved.json()["id"] == "r-1"

    response = await client.get("/api/report/r-1", headers=auth_headers)
    report = response.json()["report"]
    assert report["title"] == "Updated digest title"
    assert report["createdAt"].endswith("Z")


@pytest.mark.asyncio
async def test_legacy_upsert_keeps_supplied_created_at(client: AsyncClient, auth_headers: dict):
    await client.post(
        "/api/report/r-2",
        headers=auth_headers,
        json={"createdAt": "2025-01-05T10:15:00Z"},
    )
    await client.post("/api/report/r-2", headers=auth_headers, json={"title": "Later title"})

    report = (await client.get("/api/report/r-2", headers=auth_headers)).json()["report"]
    assert report == {"id": "r-2", "title": "Later title", "createdAt": "2025-01-05T10:15:00Z"}


@pytest.mark.asyncio
async def test_legacy_upsert_rejects_unexpected_property(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/report/r-1", headers=auth_headers, json={"foo": 1})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid payload: unexpected property 'foo'"


@pytest.mark.asyncio
async def test_legacy_upsert_rejects_bad_created_at(client: AsyncClient, auth_headers: dict):
    response = await client.post(
        "/api/report/r-1",
        headers=auth_headers,
        json={"createdAt": "05/01/2025"},
    )
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid payload: createdAt must be ISO-8601")


@pytest.mark.asyncio
async def test_test_email_requires_address(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/test/email", headers=auth_headers, json={})
    assert response.status_code == 400
    assert response.json() == {"message": "Email address is required"}


@pytest.mark.asyncio
async def test_test_email_sends(client: AsyncClient, auth_headers: dict, sendgrid_requests):
    response = await client.post(
        "/api/test/email",
        headers=auth_headers,
        json={"email": "reader@example.com"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Test email sent to reader@example.com"}
    assert len(sendgrid_requests) == 1


@pytest.mark.asyncio
async def test_test_email_transport_failure(client: AsyncClient, auth_headers: dict, email_sender):
    email_sender.api_key = None

    response = await client.post(
        "/api/test/email",
        headers=auth_headers,
        json={"email": "reader@example.com"},
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "SendGrid not configured"}


@pytest.mark.asyncio
async def test_language_is_stored_as_sent(client: AsyncClient, auth_headers: dict):
    created = await client.post(
        "/api/reports", headers=auth_headers, json=report_payload(language="en-US")
    )
    report_id = created.json()["report_id"]

    response = await client.get(f"/api/reports/{report_id}", headers=auth_headers)
    assert response.json()["language"] == "en-US"


class UnavailableStore(ReportStore):
    async def insert(self, **fields):
        raise PersistenceError("Failed to create report")


@pytest.mark.asyncio
async def test_create_report_persistence_failure(
    client: AsyncClient, auth_headers: dict, report_service, scheduler
):
    broken = ReportService(UnavailableStore(None), report_service.dispatcher, scheduler)
    app.dependency_overrides[get_report_service] = lambda: broken

    response = await client.post("/api/reports", headers=auth_headers, json=report_payload())
    assert response.status_code == 500
    assert response.json() == {"message": "Failed to create report"}
    assert scheduler.scheduled == []
