"""Certificate schema: users, courses, course_completions, certificates

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables created:
  - users                 Profile snapshot (display name, wallet, earned counter)
  - courses               Course snapshot (title, instructor, category, skills, totals)
  - course_completions    Completion signal + final score, one per (user, course)
  - certificates          Issued certificates, one per (user, course)

Downgrade: drops all tables in reverse dependency order.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("wallet_address", sa.String(100), nullable=True),
        sa.Column("certificates_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("username"),
    )

    # ── 2. courses ────────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("instructor_name", sa.String(200), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("subcategories", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("total_duration_secs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_lessons", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("course_id"),
    )

    # ── 3. course_completions ─────────────────────────────────────────────────
    op.create_table(
        "course_completions",
        sa.Column("completion_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("final_score", sa.Numeric(5, 2), nullable=True),
        sa.PrimaryKeyConstraint("completion_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.course_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "course_id", name="uq_course_completions_user_course"),
    )
    op.create_index("ix_course_completions_user_id", "course_completions", ["user_id"])

    # ── 4. certificates ───────────────────────────────────────────────────────
    # uq_certificates_user_course is what makes concurrent issuance safe:
    # the losing insert fails and re-reads the winner.
    op.create_table(
        "certificates",
        sa.Column("certificate_id", sa.Uuid(), nullable=False),
        sa.Column("certificate_number", sa.String(32), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("template_image", sa.String(500), nullable=False),
        sa.Column("student_name", sa.String(200), nullable=False),
        sa.Column("student_wallet", sa.String(100), nullable=False),
        sa.Column("course_title", sa.String(300), nullable=False),
        sa.Column("instructor", sa.String(200), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("skills", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("grade", sa.String(32), nullable=False),
        sa.Column("final_score", sa.Numeric(5, 2), nullable=False),
        sa.Column("total_hours", sa.Numeric(6, 1), nullable=False),
        sa.Column("total_lessons", sa.Integer(), nullable=False),
        sa.Column("blockchain_hash", sa.String(66), nullable=False),
        sa.Column("verification_url", sa.String(500), nullable=False),
        sa.Column(
            "issued_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("certificate_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["courses.course_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("certificate_number"),
        sa.UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
    )
    op.create_index("ix_certificates_user_id", "certificates", ["user_id"])
    op.create_index("ix_certificates_course_id", "certificates", ["course_id"])
    op.create_index("ix_certificates_blockchain_hash", "certificates", ["blockchain_hash"])


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_index("ix_certificates_blockchain_hash", table_name="certificates")
    op.drop_index("ix_certificates_course_id", table_name="certificates")
    op.drop_index("ix_certificates_user_id", table_name="certificates")
    op.drop_table("certificates")
    op.drop_index("ix_course_completions_user_id", table_name="course_completions")
    op.drop_table("course_completions")
    op.drop_table("courses")
    op.drop_table("users")
