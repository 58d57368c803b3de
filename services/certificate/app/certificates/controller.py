"""Certificate controller: maps service results to HTTP responses."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates import service
from app.certificates.image_composer import ImageComposer
from app.certificates.schemas import (
    CertificateImageTokenResponse,
    CertificatePublicView,
    CertificateResponse,
    CertificateVerifyResponse,
)
from app.certificates.storage import StorageUploader
from app.config import Settings
from app.exceptions import (
    CertificateAccessForbiddenError,
    CertificateConflictError,
    CertificateNotFoundError,
    PreconditionNotMetError,
    SigningKeyNotConfiguredError,
    UpstreamUploadError,
)

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, CertificateNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PreconditionNotMetError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Course not yet completed. Complete the course first.",
        )
    if isinstance(exc, CertificateAccessForbiddenError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view this certificate.",
        )
    if isinstance(exc, CertificateConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Could not allocate a certificate number. Try again.",
        )
    if isinstance(exc, UpstreamUploadError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Certificate storage is unavailable. Try again later.",
        )
    if isinstance(exc, SigningKeyNotConfiguredError):
        logger.error("Certificate token key is not configured")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Certificate access not configured.",
        )
    logger.exception("Unexpected certificate error", exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def generate_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
    composer: ImageComposer,
    uploader: StorageUploader,
) -> CertificateResponse:
    try:
        cert = await service.generate_certificate(
            db, user_id, course_id, settings, composer, uploader,
        )
        return CertificateResponse.model_validate(cert)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_certificate(
    db: AsyncSession,
    certificate_id: UUID,
    user_id: UUID,
) -> CertificateResponse:
    try:
        cert = await service.get_certificate(db, certificate_id, user_id)
        return CertificateResponse.model_validate(cert)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_my_certificates(
    db: AsyncSession,
    user_id: UUID,
) -> list[CertificateResponse]:
    certs = await service.get_my_certificates(db, user_id)
    return [CertificateResponse.model_validate(c) for c in certs]


async def get_image_token(
    db: AsyncSession,
    certificate_id: UUID,
    user_id: UUID,
    settings: Settings,
) -> CertificateImageTokenResponse:
    try:
        token = await service.issue_access_token(db, certificate_id, user_id, settings)
        return CertificateImageTokenResponse(signed_url=token.signed_url, expires=token.expires)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def verify_certificate(
    db: AsyncSession,
    certificate_number: str,
) -> CertificateVerifyResponse:
    result = await service.verify_certificate(db, certificate_number)
    cert = result["certificate"]
    return CertificateVerifyResponse(
        valid=result["valid"],
        certificate=CertificatePublicView.model_validate(cert) if cert is not None else None,
    )
