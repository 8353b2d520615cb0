"""
Session token utilities and auth dependencies.

Two audiences share one signing key: admin tokens carry ``isAdmin`` and user
tokens carry ``userId``. Tokens are read from the audience's cookie, or from
an ``Authorization: Bearer`` header.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request, Response

from gembreak.database.config.config import settings
from gembreak.errors import Unauthorized

logger = logging.getLogger(__name__)

ADMIN_COOKIE = "admin_session"
USER_COOKIE = "user_session"


def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """
    Issue a signed JWT.

    Args:
        data: Claims to embed.
        expires_minutes: Lifetime; defaults to ``settings.ACCESS_TOKEN_EXPIRE_MINUTES``.

    Returns:
        str: The encoded token.
    """
    if expires_minutes is None:
        expires_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    now = datetime.now(timezone.utc)
    claims = dict(data)
    claims.update({"iat": now, "exp": now + timedelta(minutes=expires_minutes)})
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Decoded claims, or None when the token is invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.info("Rejected session token: %s", exc)
        return None


def _read_token(request: Request, cookie_name: str) -> Optional[str]:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


def require_admin(request: Request) -> dict:
    """FastAPI dependency guarding admin routes."""
    token = _read_token(request, ADMIN_COOKIE)
    if not token:
        raise Unauthorized("Admin authentication required")
    payload = verify_token(token)
    if not payload or not payload.get("isAdmin"):
        raise Unauthorized("Admin session expired or invalid")
    return payload


def require_user(request: Request) -> dict:
    """FastAPI dependency guarding ``/api/user`` routes."""
    token = _read_token(request, USER_COOKIE)
    if not token:
        raise Unauthorized("User authentication required")
    payload = verify_token(token)
    if not payload or not payload.get("userId"):
        raise Unauthorized("User session expired or invalid")
    return payload


def set_session_cookie(response: Response, name: str, token: str) -> None:
    response.set_cookie(
        key=name,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
        samesite="lax",
    )


def clear_session_cookie(response: Response, name: str) -> None:
    response.delete_cookie(key=name, path="/")
