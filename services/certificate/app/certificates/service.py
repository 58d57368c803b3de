"""Certificate service: issuance, image rendering/upload, access tokens, verification.

Pure business logic, no FastAPI imports.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.certificates.grading import calculate_grade
from app.certificates.image_composer import MAX_SKILLS, ImageComposer, RenderPayload
from app.certificates.signing import AccessTokenSigner, asset_path_from_url, build_signed_url
from app.certificates.storage import StorageUploader, upload_with_retry
from app.config import Settings
from app.exceptions import (
    CertificateAccessForbiddenError,
    CertificateConflictError,
    CertificateNotFoundError,
    PreconditionNotMetError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.course_completion import CourseCompletion
from app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_FINAL_SCORE = Decimal("100")
DEFAULT_INSTRUCTOR = "Instructor"
DEFAULT_CATEGORY = "General"
NO_WALLET = "Not Connected"


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------


def generate_certificate_number(prefix: str, year: int | None = None) -> str:
    """``{prefix}-{year}-{6 uppercase hex}``, e.g. ``LA-2026-0A1B2C``."""
    year = year if year is not None else datetime.now(timezone.utc).year
    return f"{prefix}-{year}-{secrets.token_hex(3).upper()}"


def calculate_total_hours(total_duration_secs: int | None) -> Decimal:
    if not total_duration_secs:
        return Decimal("0")
    return Decimal(str(round(total_duration_secs / 3600, 1)))


def select_skills(course: Course) -> list[str]:
    """First non-empty of skills, subcategories, [category]; at most five."""
    for candidate in (course.skills, course.subcategories):
        if candidate:
            return list(candidate)[:MAX_SKILLS]
    return [course.category] if course.category else []


def build_verification_url(frontend_url: str, certificate_number: str) -> str:
    return f"{frontend_url.rstrip('/')}/verify/{certificate_number}"


def _integrity_hash(
    certificate_number: str, user_id: UUID, course_id: UUID, completed_date: datetime,
) -> str:
    """Placeholder integrity marker; not looked up on any chain."""
    message = f"{certificate_number}:{user_id}:{course_id}:{completed_date.isoformat()}"
    return "0x" + hashlib.sha256(message.encode()).hexdigest()


@dataclass(frozen=True)
class _IssuanceSnapshot:
    """Plain values read before any insert, so they survive a session rollback."""

    user_id: UUID
    course_id: UUID
    student_name: str
    student_wallet: str
    course_title: str
    instructor: str
    category: str
    skills: list[str]
    completed_date: datetime
    final_score: Decimal
    grade: str
    total_hours: Decimal
    total_lessons: int


async def _load_snapshot(db: AsyncSession, user_id: UUID, course_id: UUID) -> _IssuanceSnapshot:
    user = await db.get(User, user_id)
    course = await db.get(Course, course_id)
    completion = await db.scalar(
        select(CourseCompletion).where(
            CourseCompletion.user_id == user_id,
            CourseCompletion.course_id == course_id,
            CourseCompletion.is_completed.is_(True),
        ),
    )
    if user is None or course is None or completion is None:
        missing = [
            name
            for name, value in (("user", user), ("course", course), ("completion", completion))
            if value is None
        ]
        raise PreconditionNotMetError(", ".join(missing) + " not found")

    final_score = (
        Decimal(completion.final_score)
        if completion.final_score is not None
        else DEFAULT_FINAL_SCORE
    )
    return _IssuanceSnapshot(
        user_id=user_id,
        course_id=course_id,
        student_name=user.display_name or user.username,
        student_wallet=user.wallet_address or NO_WALLET,
        course_title=course.title,
        instructor=course.instructor_name or DEFAULT_INSTRUCTOR,
        category=course.category or DEFAULT_CATEGORY,
        skills=select_skills(course),
        completed_date=completion.completed_at or datetime.now(timezone.utc),
        final_score=final_score,
        grade=calculate_grade(float(final_score)),
        total_hours=calculate_total_hours(course.total_duration_secs),
        total_lessons=course.total_lessons or 0,
    )


async def _find_existing(db: AsyncSession, user_id: UUID, course_id: UUID) -> Certificate | None:
    return await db.scalar(
        select(Certificate).where(
            Certificate.user_id == user_id,
            Certificate.course_id == course_id,
        ),
    )


async def _reserve_certificate_number(db: AsyncSession, prefix: str, max_attempts: int) -> str:
    """Draw numbers until one is unused, so an upload never overwrites another certificate."""
    for _ in range(max_attempts):
        number = generate_certificate_number(prefix)
        taken = await db.scalar(
            select(Certificate.certificate_id).where(Certificate.certificate_number == number),
        )
        if taken is None:
            return number
        logger.warning("Certificate number %s already taken, drawing another", number)
    raise CertificateConflictError()


# ---------------------------------------------------------------------------
# Certificate generation
# ---------------------------------------------------------------------------


async def generate_certificate(
    db: AsyncSession,
    user_id: UUID,
    course_id: UUID,
    settings: Settings,
    composer: ImageComposer,
    uploader: StorageUploader,
) -> Certificate:
    """Issue the certificate for a completed course. Idempotent per (user, course).

    The record is inserted only after the image upload succeeds; any failure
    before that leaves nothing behind.
    """
    existing = await _find_existing(db, user_id, course_id)
    if existing is not None:
        logger.info("Certificate already exists for user=%s course=%s", user_id, course_id)
        return existing

    snap = await _load_snapshot(db, user_id, course_id)

    for _ in range(settings.certificate_number_max_attempts):
        number = await _reserve_certificate_number(
            db, settings.certificate_number_prefix, settings.certificate_number_max_attempts,
        )
        verification_url = build_verification_url(settings.frontend_url, number)
        payload = RenderPayload(
            student_name=snap.student_name,
            course_title=snap.course_title,
            category=snap.category,
            skills=snap.skills,
            instructor=snap.instructor,
            completed_date=snap.completed_date,
            certificate_number=number,
            grade=snap.grade,
            final_score=snap.final_score,
            total_hours=snap.total_hours,
            total_lessons=snap.total_lessons,
            verification_url=verification_url,
        )
        # Rendering is CPU-bound → offload to thread
        png_bytes = await asyncio.to_thread(composer.compose, payload)

        image_url = await upload_with_retry(
            uploader,
            png_bytes,
            f"{number}.png",
            max_attempts=settings.upload_max_attempts,
            backoff_secs=settings.upload_backoff_secs,
        )

        cert = Certificate(
            certificate_number=number,
            user_id=snap.user_id,
            course_id=snap.course_id,
            template_image=image_url,
            student_name=snap.student_name,
            student_wallet=snap.student_wallet,
            course_title=snap.course_title,
            instructor=snap.instructor,
            category=snap.category,
            skills=snap.skills,
            completed_date=snap.completed_date,
            grade=snap.grade,
            final_score=snap.final_score,
            total_hours=snap.total_hours,
            total_lessons=snap.total_lessons,
            blockchain_hash=_integrity_hash(number, user_id, course_id, snap.completed_date),
            verification_url=verification_url,
        )
        db.add(cert)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            winner = await _find_existing(db, user_id, course_id)
            if winner is not None:
                logger.info(
                    "Concurrent issuance for user=%s course=%s, returning %s",
                    user_id, course_id, winner.certificate_number,
                )
                return winner
            logger.warning("Certificate number %s collided on insert, retrying", number)
            continue

        await db.execute(
            update(User)
            .where(User.user_id == user_id)
            .values(certificates_earned=User.certificates_earned + 1),
        )
        await db.refresh(cert)
        logger.info(
            "Certificate %s issued for user=%s course=%s", number, user_id, course_id,
        )
        return cert

    raise CertificateConflictError()


# ---------------------------------------------------------------------------
# Signed image access
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertificateAccessToken:
    signed_url: str
    expires: int


async def issue_access_token(
    db: AsyncSession,
    certificate_id: UUID,
    requesting_user_id: UUID,
    settings: Settings,
) -> CertificateAccessToken:
    """Owner-only, time-limited CDN URL for the certificate image."""
    cert = await get_certificate_by_id(db, certificate_id)
    if cert.user_id != requesting_user_id:
        raise CertificateAccessForbiddenError()

    signer = AccessTokenSigner(settings.bunny_token_key_certificates)
    signed = signer.sign_path(
        asset_path_from_url(cert.template_image), settings.certificate_token_ttl_secs,
    )
    return CertificateAccessToken(
        signed_url=build_signed_url(cert.template_image, signed),
        expires=signed.expires,
    )


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


async def get_certificate_by_id(
    db: AsyncSession,
    certificate_id: UUID,
) -> Certificate:
    cert = await db.get(Certificate, certificate_id)
    if cert is None:
        raise CertificateNotFoundError(str(certificate_id))
    return cert


async def get_certificate(
    db: AsyncSession,
    certificate_id: UUID,
    requesting_user_id: UUID,
) -> Certificate:
    cert = await get_certificate_by_id(db, certificate_id)
    if cert.user_id != requesting_user_id:
        raise CertificateAccessForbiddenError()
    return cert


async def get_my_certificates(
    db: AsyncSession,
    user_id: UUID,
) -> list[Certificate]:
    stmt = (
        select(Certificate)
        .where(Certificate.user_id == user_id)
        .order_by(Certificate.completed_date.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Public verification
# ---------------------------------------------------------------------------


async def verify_certificate(
    db: AsyncSession,
    certificate_number: str,
) -> dict:
    """Public verification: no auth required."""
    cert = await db.scalar(
        select(Certificate).where(Certificate.certificate_number == certificate_number),
    )
    return {"valid": cert is not None, "certificate": cert}
