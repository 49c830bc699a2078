"""JWT verification: FastAPI dependency for bearer-token callers.

``get_current_user`` requires a valid HS256 JWT and returns its ``sub`` claim,
which is the owner id for every saved-route operation.
"""
from __future__ import annotations

import logging
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from roadbook.config import settings
from roadbook.errors import AuthError

log = logging.getLogger(__name__)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=AuthError.status_code,
        detail=AuthError(message).to_dict(),
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_token(request: Request) -> Optional[str]:
    """Pull Bearer token from the Authorization header."""
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def decode_token(token: str) -> dict:
    """Decode and verify a JWT using HS256."""
    if not settings.jwt_secret:
        raise jwt.InvalidTokenError("token verification is not configured")
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
    )


async def get_current_user(request: Request) -> str:
    """FastAPI dependency: requires a valid JWT. Returns the owner id."""
    token = _extract_token(request)
    if not token:
        raise _unauthorized("Missing authorization header")
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError as e:
        log.info("Rejected bearer token: %s", e)
        raise _unauthorized(f"Invalid token: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: no sub claim")
    return str(user_id)
