"""
Authentication utilities for FastAPI.

A Supabase access token is optional. When one is sent, the user id comes from
the token and any `userId` the client passes must match it. Without a token the
`userId` parameter identifies the user.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from supabase import create_client

from mml_backend.db.supabase import get_supabase_anon_key, get_supabase_url

logger = logging.getLogger(__name__)


def get_bearer_token(request: Request) -> str | None:
    """
    Extract Bearer token from Authorization header.

    Returns None if no token is present.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(request: Request) -> dict | None:
    """
    Get the current user from the Supabase JWT token.

    Returns None if no token is present. An invalid token is a 401, so that a
    stale session is not silently treated as "no token".
    """
    token = get_bearer_token(request)
    if not token:
        return None

    try:
        client = create_client(get_supabase_url(), get_supabase_anon_key())
        user_response = client.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Failed to validate token: {e}")
        user_response = None

    if user_response and user_response.user:
        return {
            "id": str(user_response.user.id),
            "email": user_response.user.email,
        }

    raise HTTPException(
        status_code=401,
        detail="Invalid or expired access token.",
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_user_id(user: dict | None, requested: str | None) -> str:
    """
    The user id a request acts for.

    Raises 403 when a token is present and `requested` names someone else, and
    400 when there is neither a token nor a `userId`.
    """
    requested = (requested or "").strip() or None
    if user is not None:
        if requested and requested != user["id"]:
            raise HTTPException(status_code=403, detail="userId does not match the authenticated user.")
        return user["id"]
    if not requested:
        raise HTTPException(status_code=400, detail="Missing userId.")
    return requested


# Type alias for dependency injection
OptionalUser = Annotated[dict | None, Depends(get_current_user)]
