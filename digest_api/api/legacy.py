"""Legacy single-report routes kept for backward compatibility."""

from fastapi import APIRouter, Depends

from digest_api.api.deps import get_report_service
from digest_api.auth.security import require_auth
from digest_api.schemas.schemas import (
    LegacyReport,
    LegacyReportResponse,
    LegacyReportUpsert,
    LegacyReportUpsertResponse,
)
from digest_api.services.report_service import ReportService

router = APIRouter(prefix="/api/report", tags=["Legacy"], dependencies=[Depends(require_auth)])


@router.get(
    "/{report_id}",
    response_model=LegacyReportResponse,
    summary="Get legacy report",
    description="Deprecated. Use GET /api/reports/{report_id}.",
    deprecated=True,
)
async def get_legacy_report(
    report_id: str,
    service: ReportService = Depends(get_report_service),
):
    record = await service.store.get_legacy(report_id)
    report = None
    if record is not None:
        report = LegacyReport(id=record.id, title=record.title, createdAt=record.created_at)

    return LegacyReportResponse(
        id=report_id,
        report=report,
        message="legacy endpoint - use /api/reports/{report_id}",
    )


@router.post(
    "/{report_id}",
    response_model=LegacyReportUpsertResponse,
    summary="Create or update legacy report",
    description="Deprecated. Accepts only `title` and `createdAt`.",
    deprecated=True,
)
async def upsert_legacy_report(
    report_id: str,
    body: LegacyReportUpsert | None = None,
    service: ReportService = Depends(get_report_service),
):
    body = body or LegacyReportUpsert()
    saved = await service.store.upsert_legacy(
        report_id, title=body.title, created_at=body.createdAt
    )

    return LegacyReportUpsertResponse(id=saved.id, ok=True, message="saved")
