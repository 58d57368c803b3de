"""Certificate domain Pydantic V2 schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class GenerateCertificateRequest(BaseModel):
    """Request body for issuing the caller's own certificate."""

    course_id: UUID


class CourseCompletedEvent(BaseModel):
    """Service-to-service completion signal from the enrollment/progress service."""

    user_id: UUID
    course_id: UUID


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CertificateResponse(BaseModel):
    """Certificate record returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    certificate_id: UUID
    certificate_number: str = Field(description="Public certificate number, e.g. LA-2026-0A1B2C.")
    user_id: UUID
    course_id: UUID
    template_image: str = Field(
        description="CDN URL of the certificate image. Fetch it through an image token.",
    )
    student_name: str
    student_wallet: str
    course_title: str
    instructor: str
    category: str
    skills: list[str] = Field(default_factory=list)
    completed_date: datetime
    grade: str
    final_score: Decimal
    total_hours: Decimal
    total_lessons: int
    blockchain_hash: str
    verification_url: str
    issued_at: datetime


class CertificatePublicView(BaseModel):
    """Non-sensitive projection shown on public verification pages."""

    model_config = ConfigDict(from_attributes=True)

    certificate_number: str
    student_name: str
    course_title: str
    instructor: str
    category: str
    skills: list[str] = Field(default_factory=list)
    completed_date: datetime
    grade: str
    final_score: Decimal
    total_hours: Decimal
    total_lessons: int
    blockchain_hash: str
    verification_url: str
    issued_at: datetime


class CertificateVerifyResponse(BaseModel):
    """Public verification result."""

    valid: bool
    certificate: CertificatePublicView | None = None


class CertificateImageTokenResponse(BaseModel):
    """Time-limited signed URL for the certificate image."""

    signed_url: str
    expires: int = Field(description="Unix epoch seconds after which the URL stops working.")
