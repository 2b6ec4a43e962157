"""Shared FastAPI dependencies."""

from typing import Optional

from fastapi import Depends, Request

from digest_api.config import Settings, get_settings
from digest_api.services.email import SendGridEmailSender
from digest_api.services.google_oauth import GoogleOAuthClient
from digest_api.services.report_service import ReportService


def get_report_service(request: Request) -> ReportService:
    """The ReportService built at startup (see main.lifespan)."""
    return request.app.state.report_service


def get_email_sender(
    service: ReportService = Depends(get_report_service),
) -> SendGridEmailSender:
    return service.dispatcher.email_sender


def get_google_client(settings: Settings = Depends(get_settings)) -> Optional[GoogleOAuthClient]:
    if not settings.google_oauth_enabled:
        return None
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_callback_uri,
    )
