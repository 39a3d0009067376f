"""Upload sinks that turn normalised images into public URLs."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from pathlib import Path, PurePath
from typing import Any, Iterable, Protocol

import httpx

from listing_admin.config.settings import Settings
from listing_admin.imgproc.normalize import JPEG_SUFFIX, NormalizedImage
from listing_admin.metrics.prometheus_exporter import images_uploaded_total
from listing_admin.services.batch import ImageBatch
from listing_admin.storage.backend import LocalStorage

logger = logging.getLogger(__name__)


class UploadError(RuntimeError):
    """Raised when a storage provider refuses or fails an upload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UploadSink(Protocol):
    provider: str
    target: str

    async def upload(self, image: NormalizedImage) -> str:
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...


def make_object_key(file_name: str) -> str:
    """Return a collision-resistant storage key that keeps the file extension."""

    suffix = PurePath(file_name).suffix.lower() or JPEG_SUFFIX
    return f"{secrets.token_hex(6)}_{int(time.time() * 1000)}{suffix}"


class LocalUploadSink:
    """Stores uploads on the local disk and returns ``file://`` URLs."""

    provider = "local"

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    async def upload(self, image: NormalizedImage) -> str:
        stored_path = await self._storage.save(make_object_key(image.file_name), image.data)
        return Path(stored_path).as_uri()

    @property
    def target(self) -> str:
        return str(self._storage.root)

    async def ping(self) -> bool:
        return await asyncio.to_thread(self._ensure_root)

    def _ensure_root(self) -> bool:
        self._storage.root.mkdir(parents=True, exist_ok=True)
        return self._storage.root.is_dir()

    async def close(self) -> None:
        return None


class _HttpUploadSink:
    provider = "http"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""

        await self._client.aclose()

    @property
    def target(self) -> str:
        return self._base_url

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        content: bytes | None = None,
        files: Iterable[tuple[str, tuple[str, bytes, str]]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                endpoint,
                content=content,
                files=files,
                headers=headers,
            )
            response.raise_for_status()
            return response
        except httpx.TimeoutException as exc:
            raise UploadError(f"{self.provider} storage timed out.") from exc
        except httpx.HTTPStatusError as exc:
            raise UploadError(
                f"{self.provider} storage returned {exc.response.status_code}: {exc.response.text}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise UploadError(f"{self.provider} storage is unreachable: {exc}") from exc


class ApiUploadSink(_HttpUploadSink):
    """Posts images to ``{base}/upload`` and reads the ``url`` from the JSON reply."""

    provider = "api"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)

    async def upload(self, image: NormalizedImage) -> str:
        files = [("file", (image.file_name, image.data, image.mime_type))]
        response = await self._request("POST", "/upload", files=files)
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise UploadError(f"Upload API returned invalid JSON: {response.text}") from exc
        url = payload.get("url") if isinstance(payload, dict) else None
        if not url:
            raise UploadError(f"Upload API response has no url: {payload!r}")
        return str(url)

    async def ping(self) -> bool:
        """Return ``True`` when the API answers without a server error."""

        try:
            response = await self._client.get("/")
        except httpx.RequestError:
            return False
        return response.status_code < 500


class SupabaseUploadSink(_HttpUploadSink):
    """Stores images in a Supabase Storage bucket with public URLs."""

    provider = "supabase"

    def __init__(
        self,
        url: str,
        key: str,
        bucket: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bucket = bucket
        super().__init__(
            url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {key}", "apikey": key},
            transport=transport,
        )

    @property
    def target(self) -> str:
        return f"{self._base_url}/{self._bucket}"

    def public_url(self, object_key: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{object_key}"

    async def upload(self, image: NormalizedImage) -> str:
        object_key = make_object_key(image.file_name)
        await self._request(
            "POST",
            f"/storage/v1/object/{self._bucket}/{object_key}",
            content=image.data,
            headers={"Content-Type": image.mime_type, "x-upsert": "false"},
        )
        return self.public_url(object_key)

    async def ping(self) -> bool:
        """Return ``True`` when the configured bucket is visible."""

        try:
            response = await self._client.get(f"/storage/v1/bucket/{self._bucket}")
        except httpx.RequestError:
            return False
        return response.is_success


def build_upload_sink(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UploadSink:
    """Create the sink for ``settings.backend_provider``.

    A provider without the configuration it needs falls back to local storage.
    """

    provider = settings.backend_provider
    if provider == "supabase":
        if settings.supabase_url and settings.supabase_key:
            return SupabaseUploadSink(
                settings.supabase_url,
                settings.supabase_key,
                settings.storage_bucket,
                timeout=settings.request_timeout,
                transport=transport,
            )
        logger.warning("Supabase storage is not configured; falling back to local uploads.")
    elif provider == "api":
        if settings.api_base_url:
            return ApiUploadSink(
                settings.api_base_url,
                timeout=settings.request_timeout,
                transport=transport,
            )
        logger.warning("API_BASE_URL is not configured; falling back to local uploads.")
    elif provider not in ("local", "mock"):
        logger.warning("Unknown backend provider %r; falling back to local uploads.", provider)

    return LocalUploadSink(LocalStorage(Path(settings.media_root)))


async def upload_batch(batch: ImageBatch, sink: UploadSink) -> list[str]:
    """Upload every entry in order and return the resulting URLs."""

    urls: list[str] = []
    for entry in batch:
        url = await sink.upload(entry.image)
        images_uploaded_total.labels(provider=sink.provider).inc()
        if url:
            urls.append(url)
    logger.info("Uploaded %d of %d images via %s storage.", len(urls), len(batch), sink.provider)
    return urls
