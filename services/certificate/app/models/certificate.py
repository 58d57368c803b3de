import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base


class Certificate(Base):
    """Issued certificate. Written once, never updated."""

    __tablename__ = "certificates"

    certificate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    certificate_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False
    )
    # CDN URL of the stored PNG, named {certificate_number}.png
    template_image: Mapped[str] = mapped_column(String(500), nullable=False)

    # Denormalized fields: snapshot at issuance, never re-derived
    student_name: Mapped[str] = mapped_column(String(200), nullable=False)
    student_wallet: Mapped[str] = mapped_column(String(100), nullable=False)
    course_title: Mapped[str] = mapped_column(String(300), nullable=False)
    instructor: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    skills: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    completed_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    grade: Mapped[str] = mapped_column(String(32), nullable=False)
    final_score: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(6, 1), nullable=False)
    total_lessons: Mapped[int] = mapped_column(Integer, nullable=False)

    blockchain_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    verification_url: Mapped[str] = mapped_column(String(500), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
        Index("ix_certificates_user_id", "user_id"),
        Index("ix_certificates_course_id", "course_id"),
        Index("ix_certificates_blockchain_hash", "blockchain_hash"),
    )
