"""Object-storage upload for certificate images.

Two backends share the ``StorageUploader`` shape:

* ``BunnyStorageUploader``: HTTP PUT into a Bunny storage zone, authenticated
  with the zone's ``AccessKey`` header; public URL on the zone's CDN host.
* ``S3StorageUploader``: boto3 ``put_object``; public URL via CloudFront when
  configured, otherwise the bucket URL. Neither S3 nor a plain CloudFront
  distribution checks the ``token``/``expires`` query, so images on this
  backend are only gated when an edge function validates the token.

Every failure surfaces as ``UpstreamUploadError``; nothing here returns a
placeholder URL.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings
from app.exceptions import UpstreamUploadError

logger = logging.getLogger(__name__)

PNG_CONTENT_TYPE = "image/png"


class StorageUploader(Protocol):
    async def upload(self, data: bytes, key: str) -> str: ...


class BunnyStorageUploader:
    def __init__(
        self,
        *,
        endpoint: str,
        zone: str,
        access_key: str,
        cdn_base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.zone = zone
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self._access_key = access_key
        self._timeout = timeout
        self._transport = transport

    async def upload(self, data: bytes, key: str) -> str:
        if not self.zone or not self._access_key:
            raise UpstreamUploadError(key, "storage zone is not configured")

        url = f"{self.endpoint}/{self.zone}/{key}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport,
            ) as client:
                r = await client.put(
                    url,
                    content=data,
                    headers={"AccessKey": self._access_key, "Content-Type": PNG_CONTENT_TYPE},
                )
        except httpx.HTTPError as exc:
            raise UpstreamUploadError(key, str(exc)) from exc
        if r.status_code >= 400:
            raise UpstreamUploadError(key, f"HTTP {r.status_code}: {r.text[:300]}")
        return f"{self.cdn_base_url}/{key}"


class S3StorageUploader:
    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        prefix: str = "",
        cloudfront_domain: str = "",
        client: object | None = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self.cloudfront_domain = cloudfront_domain
        # boto3 clients are thread-safe once built; building one is not
        self._client = client if client is not None else boto3.client("s3", region_name=region)

    def _put(self, data: bytes, s3_key: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=s3_key,
            Body=data,
            ContentType=PNG_CONTENT_TYPE,
            ContentDisposition="inline",
        )

    async def upload(self, data: bytes, key: str) -> str:
        s3_key = f"{self.prefix}{key}"
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, lambda: self._put(data, s3_key))
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamUploadError(key, str(exc)) from exc

        if self.cloudfront_domain:
            return f"https://{self.cloudfront_domain}/{s3_key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{s3_key}"


def build_uploader(settings: Settings) -> StorageUploader:
    if settings.storage_backend == "s3":
        return S3StorageUploader(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            prefix=settings.s3_certificate_prefix,
            cloudfront_domain=settings.cloudfront_domain,
        )
    if settings.storage_backend != "bunny":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    return BunnyStorageUploader(
        endpoint=settings.bunny_storage_endpoint,
        zone=settings.bunny_zone_certificates,
        access_key=settings.bunny_storage_password_certificates,
        cdn_base_url=settings.bunny_cdn_certificates,
        timeout=settings.http_timeout_secs,
    )


async def upload_with_retry(
    uploader: StorageUploader,
    data: bytes,
    key: str,
    *,
    max_attempts: int = 3,
    backoff_secs: float = 0.5,
) -> str:
    """Upload with exponential backoff; re-raises the last ``UpstreamUploadError``."""
    attempt = 1
    while True:
        try:
            return await uploader.upload(data, key)
        except UpstreamUploadError as exc:
            if attempt >= max_attempts:
                logger.error("Upload of %s failed after %d attempts: %s", key, attempt, exc.reason)
                raise
            delay = backoff_secs * 2 ** (attempt - 1)
            logger.warning(
                "Upload of %s failed (attempt %d/%d), retrying in %.1fs: %s",
                key, attempt, max_attempts, delay, exc.reason,
            )
            await asyncio.sleep(delay)
            attempt += 1
