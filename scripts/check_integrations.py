"""Ping the image storage configured through BACKEND_PROVIDER."""

from __future__ import annotations

import asyncio
from typing import Iterable

from listing_admin.config.settings import Settings, get_settings
from listing_admin.integrations import IntegrationCheckResult, run_all_checks
from listing_admin.monitoring.logging import configure_logging


def describe_settings(settings: Settings) -> str:
    """One line naming the provider and where images will be stored."""

    if settings.backend_provider == "supabase":
        location = f"bucket {settings.storage_bucket!r} at {settings.supabase_url or '<unset>'}"
    elif settings.backend_provider == "api":
        location = settings.api_base_url or "<unset>"
    else:
        location = settings.media_root
    return f"Provider: {settings.backend_provider} ({location})"


def print_results(results: Iterable[IntegrationCheckResult]) -> None:
    for result in results:
        status = "✅" if result.success else "❌"
        print(f"{status} {result.name}: {result.message}")


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    print(describe_settings(settings))
    results = asyncio.run(run_all_checks())
    print_results(results)
    return 0 if all(result.success for result in results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
