"""Integration check helpers."""

from .checks import (
    IntegrationCheckResult,
    check_upload_backend,
    run_all_checks,
)

__all__ = [
    "IntegrationCheckResult",
    "check_upload_backend",
    "run_all_checks",
]
