"""Pydantic schemas for request/response validation."""

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Minimal ISO-8601 check used by the legacy endpoints
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z$")


def is_iso_date_string(value: str) -> bool:
    return bool(ISO_DATE_PATTERN.match(value))


# ============== Report Schemas ==============


class DeliveryConfig(BaseModel):
    """How a finished summary is transmitted to the requester."""

    method: Literal["email", "webhook", "none"] = Field(..., description="Delivery method")
    address: Optional[str] = Field(None, description="Email address (or webhook URL)")
    webhook_url: Optional[str] = Field(None, description="Webhook URL for webhook delivery")

    @property
    def target(self) -> Optional[str]:
        """Address the dispatcher delivers to."""
        if self.method == "webhook":
            return self.webhook_url or self.address
        return self.address


class ReportCreateRequest(BaseModel):
    """Request to create a new digest report."""

    source: Literal["youtube", "podcast", "article"] = Field(..., description="Content source type")
    channel_id: Optional[str] = Field(None, description="Channel identifier")
    video_id: Optional[str] = Field(None, description="Video identifier (youtube)")
    url: Optional[str] = Field(None, description="Content URL")
    format: Literal["summary", "detailed", "bullet_points"] = Field(..., description="Summary format")
    language: str = Field(..., min_length=1, description="Language code, stored as sent")
    delivery: DeliveryConfig


class ReportSummary(BaseModel):
    title: str
    key_points: list[str]
    word_count: int
    full_text: Optional[str] = None


class ReportCreateResponse(BaseModel):
    """Response after creating a report."""

    status: str
    report_id: str
    summary: Optional[ReportSummary] = None
    delivery_status: str
    timestamp: str


class ReportResponse(BaseModel):
    """Client-visible projection of a stored report."""

    report_id: str
    status: str
    source: str
    format: str
    language: str
    summary: Optional[ReportSummary] = None
    delivery_status: str
    created_at: str
    completed_at: Optional[str] = None


# ============== Legacy Schemas ==============


class LegacyReportUpsert(BaseModel):
    """Body of the legacy upsert endpoint; no other keys are accepted."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    createdAt: Optional[str] = None

    @field_validator("createdAt")
    @classmethod
    def check_created_at(cls, v: str | None) -> str | None:
        if v and not is_iso_date_string(v):
            raise ValueError(
                "createdAt must be ISO-8601 string (e.g., 2025-01-05T10:15:00Z)"
            )
        return v


class LegacyReport(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: Optional[str] = None
    createdAt: Optional[str] = None


class LegacyReportResponse(BaseModel):
    id: str
    report: Optional[LegacyReport] = None
    message: str


class LegacyReportUpsertResponse(BaseModel):
    id: str
    ok: bool
    message: Optional[str] = None


# ============== Misc Schemas ==============


class EmailTestRequest(BaseModel):
    email: Optional[str] = None


class EmailTestResponse(BaseModel):
    success: bool
    message: str


class UserInfo(BaseModel):
    """Identity carried by a session token."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    provider: str


class HealthResponse(BaseModel):
    ok: bool


class ErrorResponse(BaseModel):
    """Standard error response."""

    message: str
