from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.certificates.fonts import load_fonts
from app.certificates.image_composer import ImageComposer, build_background_attempts
from app.certificates.storage import StorageUploader, build_uploader
from app.config import Settings

_bearer = HTTPBearer(auto_error=False)


def get_settings() -> Settings:
    return Settings()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    settings: Settings = Depends(get_settings),
) -> UUID:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_composer(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> ImageComposer:
    """Composer built once in the app lifespan; built lazily if lifespan did not run."""
    composer = getattr(request.app.state, "composer", None)
    if composer is None:
        fonts = load_fonts(settings.certificate_fonts_dir)
        composer = ImageComposer(
            fonts,
            build_background_attempts(settings),
            brand_name=settings.brand_name,
        )
        request.app.state.composer = composer
    return composer


def get_uploader(settings: Settings = Depends(get_settings)) -> StorageUploader:
    return build_uploader(settings)
