"""Signed-URL tokens for certificate images served from the CDN.

Pure utility: no FastAPI imports. The CDN recomputes

    token = hex(SHA-256(secret_key + path + str(expires)))

and rejects the request when the digests differ or ``expires`` has passed.
Concatenation order and the absence of separators must match the CDN side.
"""

from __future__ import annotations

import hashlib
import hmac
import time
from dataclasses import dataclass
from urllib.parse import urlsplit

from app.exceptions import SigningKeyNotConfiguredError


@dataclass(frozen=True)
class SignedPath:
    token: str
    expires: int


def _now() -> int:
    return int(time.time())


class AccessTokenSigner:
    """Signs and verifies asset paths with the CDN token key."""

    def __init__(self, secret_key: str | None) -> None:
        if not secret_key:
            raise SigningKeyNotConfiguredError()
        self._secret_key = secret_key

    def _digest(self, path: str, expires: int) -> str:
        message = f"{self._secret_key}{path}{expires}"
        return hashlib.sha256(message.encode()).hexdigest()

    def sign_path(self, path: str, ttl_secs: int, *, now: int | None = None) -> SignedPath:
        if not path.startswith("/"):
            raise ValueError(f"Asset path must be absolute: {path!r}")
        expires = (now if now is not None else _now()) + ttl_secs
        return SignedPath(token=self._digest(path, expires), expires=expires)

    def verify(self, path: str, token: str, expires: int, *, now: int | None = None) -> bool:
        if expires < (now if now is not None else _now()):
            return False
        return hmac.compare_digest(self._digest(path, expires), token)


def asset_path_from_url(url: str) -> str:
    """Path the CDN serves the asset under, as it appears in the token.

    ``https://cdn.example/certificates/LA-2026-0A1B2C.png`` → ``/certificates/LA-2026-0A1B2C.png``
    """
    path = urlsplit(url).path
    if not path or path.endswith("/"):
        raise ValueError(f"No file name in asset URL: {url!r}")
    return path


def build_signed_url(asset_url: str, signed: SignedPath) -> str:
    return f"{asset_url}?token={signed.token}&expires={signed.expires}"
