import io
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.certificates.backgrounds import ProceduralBackgroundAttempt
from app.certificates.fonts import FontSet
from app.certificates.image_composer import ImageComposer, RenderPayload
from app.config import Settings
from app.database import get_db
from app.dependencies import get_composer, get_settings, get_uploader
from app.exceptions import UpstreamUploadError
from app.main import create_app
from app.models import Course, CourseCompletion, User
from shared.database.postgres import Base


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_JWT_SECRET = "certificate-test-secret-0123456789abcdef"
TEST_CDN = "https://certificates.cdn.test"


class FakeUploader:
    """Records uploads; fails the first ``fail_times`` calls (all of them if None)."""

    def __init__(self, fail_times: int | None = 0) -> None:
        self.fail_times = fail_times
        self.keys: list[str] = []
        self.payloads: list[bytes] = []

    async def upload(self, data: bytes, key: str) -> str:
        self.keys.append(key)
        self.payloads.append(data)
        if self.fail_times is None or len(self.keys) <= self.fail_times:
            raise UpstreamUploadError(key, "storage zone unreachable")
        return f"{TEST_CDN}/{key}"


class StubComposer:
    """Skips rendering; returns a tiny PNG and keeps the payloads it was given."""

    def __init__(self) -> None:
        self.payloads: list[RenderPayload] = []

    def compose(self, payload: RenderPayload) -> bytes:
        self.payloads.append(payload)
        buf = io.BytesIO()
        Image.new("RGB", (4, 4), (0, 255, 135)).save(buf, format="PNG")
        return buf.getvalue()


@dataclass
class Seeded:
    user_id: UUID
    other_user_id: UUID
    course_id: UUID
    completed_at: datetime


def make_token(user_id: UUID) -> str:
    return jwt.encode({"sub": str(user_id)}, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        certificate_database_url=TEST_DATABASE_URL,
        jwt_secret=TEST_JWT_SECRET,
        frontend_url="https://academy.test",
        certificate_template_dir=str(tmp_path / "templates"),
        certificate_asset_base_url="",
        certificate_fonts_dir="",
        bunny_zone_certificates="certificates",
        bunny_storage_password_certificates="storage-password",
        bunny_cdn_certificates=TEST_CDN,
        bunny_token_key_certificates="cdn-token-key",
        upload_backoff_secs=0,
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory) -> Seeded:
    completed_at = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
    async with session_factory() as session:
        ada = User(username="ada", display_name="Ada Lovelace", wallet_address="0xada")
        grace = User(username="grace")
        course = Course(
            title="Intro to Solidity",
            instructor_name="Gavin Wood",
            category="Blockchain",
            skills=["Solidity", "Smart Contracts", "EVM"],
            subcategories=["Web3"],
            total_duration_secs=5400,
            total_lessons=12,
        )
        session.add_all([ada, grace, course])
        await session.flush()
        session.add(
            CourseCompletion(
                user_id=ada.user_id,
                course_id=course.course_id,
                is_completed=True,
                completed_at=completed_at,
                final_score=Decimal("92"),
            ),
        )
        await session.commit()
        return Seeded(
            user_id=ada.user_id,
            other_user_id=grace.user_id,
            course_id=course.course_id,
            completed_at=completed_at,
        )


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def stub_composer() -> StubComposer:
    return StubComposer()


@pytest.fixture
def composer() -> ImageComposer:
    return ImageComposer(FontSet(), [ProceduralBackgroundAttempt()])


@pytest.fixture
def app(session_factory, settings, stub_composer, uploader) -> FastAPI:
    app = create_app()

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_composer] = lambda: stub_composer
    app.dependency_overrides[get_uploader] = lambda: uploader
    return app


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth():
    return auth_headers


@pytest.fixture
def make_uploader():
    return FakeUploader
