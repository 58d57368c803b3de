#!/usr/bin/env python3
"""
Seed the certificate database with a demo learner who has completed a course.

Reads CERTIFICATE_DATABASE_URL from .env (or the environment). Tables are
created when missing, so a throwaway SQLite URL works too:

    CERTIFICATE_DATABASE_URL=sqlite+aiosqlite:///./certificates.db

Usage:
    cd lizard-academy-certificates
    python -m scripts.seed_data
"""
from __future__ import annotations

import asyncio
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Add backend root to path so imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "services" / "certificate"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "shared"))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.models import Course, CourseCompletion, User
from shared.database.postgres import Base, get_async_engine

DEMO_USERNAME = "ada"
DEMO_COURSE_TITLE = "Intro to Solidity"


async def main() -> None:
    db_url = os.environ.get("CERTIFICATE_DATABASE_URL")
    if not db_url:
        print("Error: CERTIFICATE_DATABASE_URL must be set in .env")
        sys.exit(1)

    engine = get_async_engine(db_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        user = await session.scalar(select(User).where(User.username == DEMO_USERNAME))
        if user is None:
            user = User(
                username=DEMO_USERNAME,
                display_name="Ada Lovelace",
                wallet_address="0x71C7656EC7ab88b098defB751B7401B5f6d8976F",
            )
            session.add(user)

        course = await session.scalar(select(Course).where(Course.title == DEMO_COURSE_TITLE))
        if course is None:
            course = Course(
                title=DEMO_COURSE_TITLE,
                instructor_name="Gavin Wood",
                category="Blockchain",
                skills=["Solidity", "Smart Contracts", "EVM", "Hardhat", "Security"],
                subcategories=["Web3"],
                total_duration_secs=5 * 3600 + 1800,
                total_lessons=24,
            )
            session.add(course)
        await session.flush()

        completion = await session.scalar(
            select(CourseCompletion).where(
                CourseCompletion.user_id == user.user_id,
                CourseCompletion.course_id == course.course_id,
            )
        )
        if completion is None:
            session.add(
                CourseCompletion(
                    user_id=user.user_id,
                    course_id=course.course_id,
                    is_completed=True,
                    completed_at=datetime.now(timezone.utc),
                    final_score=Decimal("92.50"),
                )
            )
        await session.commit()

        print(f"Seeded user {user.username} (user_id={user.user_id})")
        print(f"Seeded course {course.title!r} (course_id={course.course_id})")
        print("Issue with: POST /api/v1/certificates/internal/completions")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
