"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :]
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), _unquote(value.strip()))


@dataclass(frozen=True, slots=True)
class Settings:
    """Centralised project settings based on OS environment variables."""

    environment: str = "dev"
    log_level: str = "INFO"

    backend_provider: str = "local"
    api_base_url: str = ""
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "property-images"
    media_root: str = "data/media"
    admin_token: str = ""
    request_timeout: float = 30.0

    image_max_width: int = 1920
    image_max_height: int = 1080
    image_quality: float = 0.85
    image_max_pixels: int = 89_478_485
    max_batch_files: int = 10
    max_file_bytes: int = 5 * 1024 * 1024
    normalize_concurrency: int = 2


def _build_settings() -> Settings:
    _load_env_file()

    return Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        backend_provider=os.getenv("BACKEND_PROVIDER", "local").strip().lower(),
        api_base_url=os.getenv("API_BASE_URL", ""),
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_KEY", ""),
        storage_bucket=os.getenv("STORAGE_BUCKET", "property-images"),
        media_root=os.getenv("MEDIA_ROOT", "data/media"),
        admin_token=os.getenv("ADMIN_TOKEN", ""),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
        image_max_width=int(os.getenv("IMAGE_MAX_WIDTH", "1920")),
        image_max_height=int(os.getenv("IMAGE_MAX_HEIGHT", "1080")),
        image_quality=float(os.getenv("IMAGE_QUALITY", "0.85")),
        image_max_pixels=int(os.getenv("IMAGE_MAX_PIXELS", "89478485")),
        max_batch_files=int(os.getenv("MAX_BATCH_FILES", "10")),
        max_file_bytes=int(os.getenv("MAX_FILE_BYTES", str(5 * 1024 * 1024))),
        normalize_concurrency=int(os.getenv("NORMALIZE_CONCURRENCY", "2")),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
