import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.certificates.fonts import load_fonts
from app.certificates.image_composer import ImageComposer, build_background_attempts
from app.certificates.router import router as certificates_router
from app.config import Settings
from app.database import close_db, init_db
from shared.middleware.error_handler import error_envelope_middleware, register_error_handlers
from shared.middleware.request_id import RequestIdLogFilter, request_id_middleware

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:[%(request_id)s] %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIdLogFilter())

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    return Settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db(settings.certificate_database_url)

    # Fonts are resolved once; the composer carries the result explicitly
    fonts = load_fonts(settings.certificate_fonts_dir)
    app.state.composer = ImageComposer(
        fonts,
        build_background_attempts(settings),
        brand_name=settings.brand_name,
    )

    if not settings.bunny_token_key_certificates:
        logger.error(
            "BUNNY_TOKEN_KEY_CERTIFICATES is not set; certificate image tokens will be refused",
        )

    yield

    # Shutdown
    await close_db()


SWAGGER_DESCRIPTION = """\
## Certificate Service

Issues course-completion certificates, stores the rendered PNG in the
certificate storage zone, and gates access to it with short-lived signed URLs.

### Domain Tags

| Tag | Description |
|-----|-------------|
| **Certificates** | Issuance, owner retrieval, signed image access, public verification |

### Authentication

All endpoints (except health check, public verification and the internal
completion hook) require a valid JWT Bearer token in the `Authorization` header.
Token structure: `{"sub": "<user_uuid>", ...}`.

### Issuance

- **Completion hook**: `POST /api/v1/certificates/internal/completions`: called by the
  progress service when a course is completed
- **Manual**: `POST /api/v1/certificates/generate`: the authenticated user's own certificate

Both are idempotent: a second call returns the same certificate.

### Image access

`GET /api/v1/certificates/{id}/image-token` returns
`{cdn_url}?token=<sha256>&expires=<epoch>`, valid for 24 hours, owner only.
"""


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Lizard Academy Certificates",
        version="0.1.0",
        description=SWAGGER_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    app.middleware("http")(request_id_middleware)
    app.middleware("http")(error_envelope_middleware)
    register_error_handlers(app)

    app.include_router(certificates_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "service": "certificate"}

    return app


app = create_app()
