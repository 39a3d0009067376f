"""Authentication helpers and route dependencies."""

import secrets

from fastapi import Depends, Header, HTTPException, status

from listing_admin.config.settings import get_settings


def require_internal_token(
    x_internal_token: str | None = Header(default=None, alias="X-Internal-Token"),
) -> None:
    """
    Ensure that administrative endpoints are protected by an internal token.

    Sign-in and session expiry are handled by the hosted auth provider in front
    of the back office; this only checks the shared secret it forwards.
    """

    settings = get_settings()
    expected_token = settings.admin_token
    if not expected_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin token is not configured.",
        )

    if x_internal_token is None or not secrets.compare_digest(x_internal_token, expected_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid administrative token.",
        )


InternalAuthDependency = Depends(require_internal_token)
