"""Connectivity checks for external storage providers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from listing_admin.config.settings import get_settings
from listing_admin.services.upload import UploadSink, build_upload_sink

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IntegrationCheckResult:
    """Structured result describing the integration check outcome."""

    name: str
    success: bool
    message: str


async def _ping_sink(sink: UploadSink) -> IntegrationCheckResult:
    name = f"Image storage ({sink.provider})"
    try:
        reachable = await sink.ping()
    except Exception as exc:
        logger.warning("Ping of %s storage failed: %s", sink.provider, exc)
        return IntegrationCheckResult(name=name, success=False, message=f"{sink.target}: {exc}")
    finally:
        await sink.close()

    if reachable:
        return IntegrationCheckResult(name=name, success=True, message=f"{sink.target} is reachable.")
    return IntegrationCheckResult(
        name=name,
        success=False,
        message=f"{sink.target} responded with a non-success status.",
    )


async def check_upload_backend() -> IntegrationCheckResult:
    """Ping the configured image storage provider and return the result."""

    return await _ping_sink(build_upload_sink(get_settings()))


async def run_all_checks() -> list[IntegrationCheckResult]:
    """Execute all integration checks concurrently."""

    return list(await asyncio.gather(check_upload_backend()))
