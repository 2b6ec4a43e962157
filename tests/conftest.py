"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from digest_api.api.deps import get_report_service
from digest_api.config import Settings, get_settings
from digest_api.db.models import Base
from digest_api.db.session import create_session_maker
from digest_api.main import app
from digest_api.middleware.rate_limit import limiter
from digest_api.services.delivery import DeliveryDispatcher
from digest_api.services.email import SendGridEmailSender
from digest_api.services.report_service import ReportService
from digest_api.services.report_store import ReportStore
from helpers import TEST_SESSION_SECRET, TEST_TOKEN


class RecordingScheduler:
    """Scheduler that only records which reports were scheduled."""

    def __init__(self):
        self.scheduled: list[str] = []

    def schedule(self, report_id: str) -> None:
        self.scheduled.append(report_id)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        digest_token=TEST_TOKEN,
        session_secret=TEST_SESSION_SECRET,
        report_scheduler="inprocess",
        report_completion_delay_seconds=0.0,
    )


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a test database engine backed by a per-test SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def store(test_engine) -> ReportStore:
    return ReportStore(create_session_maker(test_engine))


@pytest.fixture
def sendgrid_requests() -> list[httpx.Request]:
    """Requests captured by the mocked SendGrid API."""
    return []


@pytest.fixture
def email_sender(sendgrid_requests) -> SendGridEmailSender:
    def handler(request: httpx.Request) -> httpx.Response:
        sendgrid_requests.append(request)
        return httpx.Response(202)

    return SendGridEmailSender(
        api_key="SG.test-key",
        from_email="noreply@example.com",
        from_name="Digest Tests",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def report_service(store, email_sender, scheduler) -> ReportService:
    return ReportService(
        store=store,
        dispatcher=DeliveryDispatcher(email_sender, retry_delay_seconds=0),
        scheduler=scheduler,
    )


@pytest_asyncio.fixture
async def client(report_service, test_settings) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""
    app.dependency_overrides[get_report_service] = lambda: report_service
    app.dependency_overrides[get_settings] = lambda: test_settings
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Get auth headers with the test token."""
    return {"Authorization": f"Bearer {TEST_TOKEN}"}

