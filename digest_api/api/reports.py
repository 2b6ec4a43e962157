"""Digest report API routes."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from digest_api.api.deps import get_email_sender, get_report_service
from digest_api.auth.security import require_auth
from digest_api.errors import DeliveryError, NotFoundError, ValidationError
from digest_api.middleware.rate_limit import rate_limit_reports
from digest_api.schemas.schemas import (
    EmailTestRequest,
    EmailTestResponse,
    ErrorResponse,
    ReportCreateRequest,
    ReportCreateResponse,
    ReportResponse,
)
from digest_api.services.email import SendGridEmailSender
from digest_api.services.report_service import ReportService, format_timestamp, summary_of

router = APIRouter(prefix="/api", tags=["Reports"], dependencies=[Depends(require_auth)])


@router.post(
    "/reports",
    response_model=ReportCreateResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Create a digest report",
    description="Submit a content source; the summary is produced and delivered in the background.",
)
@rate_limit_reports()
async def create_report(
    request: Request,
    body: ReportCreateRequest,
    service: ReportService = Depends(get_report_service),
):
    """
    Create a new digest report.

    - **source**: "youtube", "podcast" or "article" (youtube needs video_id or url)
    - **format**: "summary", "detailed" or "bullet_points"
    - **delivery**: method "email" (needs address), "webhook" (needs webhook_url) or "none"

    The response is returned immediately with status "processing"; poll
    `GET /api/reports/{report_id}` for the result.
    """
    report = await service.create(body)

    return ReportCreateResponse(
        status=report.status.value,
        report_id=report.report_id,
        summary=summary_of(report),
        delivery_status=report.delivery_status.value,
        timestamp=format_timestamp(report.created_at),
    )


@router.get(
    "/reports/{report_id}",
    response_model=ReportResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    summary="Get report status",
    description="Get the status, summary and delivery status of a report.",
)
async def get_report(
    report_id: str,
    service: ReportService = Depends(get_report_service),
):
    report = await service.get(report_id)

    if report is None:
        raise NotFoundError(f"Report {report_id} not found")

    return report


@router.post(
    "/test/email",
    response_model=EmailTestResponse,
    summary="Send a test email",
    description="Send a fixed test digest to verify the mail transport.",
)
async def send_test_email(
    body: EmailTestRequest,
    sender: SendGridEmailSender = Depends(get_email_sender),
):
    if not body.email:
        raise ValidationError("Email address is required")

    try:
        await sender.send_test(body.email)
    except DeliveryError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": e.message},
        )

    return EmailTestResponse(success=True, message=f"Test email sent to {body.email}")
