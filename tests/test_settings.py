"""Tests for environment-driven settings."""

from __future__ import annotations

import os

import pytest

from listing_admin.config.settings import _load_env_file, get_settings
from listing_admin.services.batch import ImageBatchController


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("IMAGE_MAX_WIDTH", "IMAGE_QUALITY", "MAX_BATCH_FILES", "MAX_FILE_BYTES", "BACKEND_PROVIDER"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.image_max_width == 1920
    assert settings.image_max_height == 1080
    assert settings.image_quality == 0.85
    assert settings.max_batch_files == 10
    assert settings.max_file_bytes == 5 * 1024 * 1024
    assert settings.backend_provider == "local"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IMAGE_MAX_WIDTH", "1280")
    monkeypatch.setenv("IMAGE_QUALITY", "0.7")
    monkeypatch.setenv("BACKEND_PROVIDER", " Supabase ")

    settings = get_settings()

    assert settings.image_max_width == 1280
    assert settings.image_quality == 0.7
    assert settings.backend_provider == "supabase"
    assert ImageBatchController.from_settings(settings) is not None


def test_settings_read_max_pixels(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IMAGE_MAX_PIXELS", "4000000")

    assert get_settings().image_max_pixels == 4_000_000


def test_env_file_strips_quotes_and_export(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in ("STORAGE_BUCKET", "SUPABASE_URL", "MEDIA_ROOT"):
        # setenv first so the variable is removed again after the test.
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    monkeypatch.setenv("BACKEND_PROVIDER", "api")
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# storage\n"
        'STORAGE_BUCKET="listing-photos"\n'
        "export SUPABASE_URL='https://demo.supabase.co'\n"
        "MEDIA_ROOT = data/uploads\n"
        "BACKEND_PROVIDER=supabase\n"
        "not a setting\n",
        encoding="utf-8",
    )

    _load_env_file(str(env_file))

    assert os.environ["STORAGE_BUCKET"] == "listing-photos"
    assert os.environ["SUPABASE_URL"] == "https://demo.supabase.co"
    assert os.environ["MEDIA_ROOT"] == "data/uploads"
    assert os.environ["BACKEND_PROVIDER"] == "api"
