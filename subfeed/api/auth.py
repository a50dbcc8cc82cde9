"""Shared-secret authorization for the feed API."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from subfeed.config import Settings, get_settings


async def require_authorization(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Reject requests whose Authorization header isn't the configured secret."""
    expected = settings.expected_server_authorization
    if not expected or authorization != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
