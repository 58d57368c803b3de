"""Certificate router: issuance, retrieval, signed image access, and public verification."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import controller
from app.certificates.image_composer import ImageComposer
from app.certificates.schemas import (
    CertificateImageTokenResponse,
    CertificateResponse,
    CertificateVerifyResponse,
    CourseCompletedEvent,
    GenerateCertificateRequest,
)
from app.certificates.storage import StorageUploader
from app.config import Settings
from app.database import get_db
from app.dependencies import get_composer, get_current_user, get_settings, get_uploader

router = APIRouter(prefix="/certificates", tags=["Certificates"])


@router.post(
    "/generate",
    response_model=CertificateResponse,
    status_code=status.HTTP_200_OK,
    summary="Issue certificate for a completed course",
    description="Renders the certificate image, uploads it to the certificate storage zone "
    "and stores the record. Idempotent: an existing certificate for the same course "
    "is returned unchanged. Returns 400 if the course is not completed.",
)
async def generate_certificate(
    body: GenerateCertificateRequest,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    composer: ImageComposer = Depends(get_composer),
    uploader: StorageUploader = Depends(get_uploader),
) -> CertificateResponse:
    return await controller.generate_certificate(
        db, user_id, body.course_id, settings, composer, uploader,
    )


@router.post(
    "/internal/completions",
    response_model=CertificateResponse,
    summary="Internal: issue certificate on course completion (service-to-service).",
)
async def course_completed(
    body: CourseCompletedEvent,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    composer: ImageComposer = Depends(get_composer),
    uploader: StorageUploader = Depends(get_uploader),
) -> CertificateResponse:
    return await controller.generate_certificate(
        db, body.user_id, body.course_id, settings, composer, uploader,
    )


@router.get(
    "/my",
    response_model=list[CertificateResponse],
    summary="List my certificates",
    description="Returns all certificates earned by the authenticated user, "
    "most recent completion first.",
)
async def get_my_certificates(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> list[CertificateResponse]:
    return await controller.get_my_certificates(db, user_id)


@router.get(
    "/verify/{certificate_number}",
    response_model=CertificateVerifyResponse,
    summary="Verify certificate by number (public)",
    description="Public endpoint: no authentication required. "
    "Returns validity and a non-sensitive view of the certificate.",
)
async def verify_certificate(
    certificate_number: str,
    db: AsyncSession = Depends(get_db),
) -> CertificateVerifyResponse:
    return await controller.verify_certificate(db, certificate_number)


@router.get(
    "/{certificate_id}/image-token",
    response_model=CertificateImageTokenResponse,
    summary="Get a signed URL for the certificate image",
    description="Owner only. The URL carries a token and expiry checked by the CDN "
    "and stays valid for 24 hours.",
)
async def get_image_token(
    certificate_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> CertificateImageTokenResponse:
    return await controller.get_image_token(db, certificate_id, user_id, settings)


@router.get(
    "/{certificate_id}",
    response_model=CertificateResponse,
    summary="Get certificate by ID",
)
async def get_certificate(
    certificate_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> CertificateResponse:
    return await controller.get_certificate(db, certificate_id, user_id)
