"""Shared-key authorization for the skill endpoint."""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from split_image.settings import get_settings

API_KEY_HEADER = "x-functions-key"


async def require_api_key(
    x_functions_key: Optional[str] = Header(None, alias=API_KEY_HEADER),
    code: Optional[str] = None,
) -> None:
    """FastAPI dependency enforcing ``SKILL_API_KEY`` when it is configured.

    The key may arrive in the ``x-functions-key`` header or the ``code`` query
    parameter, the two places skill callers already put function keys.
    """

    expected = get_settings().api_key
    if not expected:
        return

    provided = x_functions_key or code
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Provide the {API_KEY_HEADER} header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
