"""Bearer-token authentication with PyJWT."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, Request

from chatbot.config import Settings, get_settings
from chatbot.errors import AuthenticationError
from chatbot.models.users import User
from chatbot.storage.base import ChatStore

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ANONYMOUS_USER_ID = "demo-user"


def create_access_token(user: User, settings: Settings) -> str:
    """Sign a token whose ``sub`` is the user id."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "username": user.username,
        "iat": now,
        "exp": now + timedelta(seconds=settings.jwt_ttl_seconds),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """Verify signature and expiry; raise ``AuthenticationError`` otherwise."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as exc:
        logger.debug("Rejected token: %s", exc)
        raise AuthenticationError("Invalid token") from exc


def _extract_token(request: Request) -> str | None:
    raw = request.headers.get("authorization") or request.cookies.get("token")
    if not raw:
        return None
    if raw.startswith("Bearer "):
        return raw[len("Bearer ") :].strip()
    return raw.strip()


async def get_current_user_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency resolving the caller's user id."""
    token = _extract_token(request)
    if token is None:
        if settings.auth_required:
            raise AuthenticationError("Unauthorized")
        return request.headers.get("x-user-id") or ANONYMOUS_USER_ID

    claims = decode_access_token(token, settings)
    user_id = claims.get("sub") or claims.get("id") or claims.get("userId")
    if not user_id:
        raise AuthenticationError("Invalid token")
    return str(user_id)


async def create_or_get_user(store: ChatStore, username: str) -> User:
    user = await store.get_user_by_username(username)
    if user is None:
        user = await store.create_user(username)
        logger.info("Created user %s (%s)", user.username, user.id)
    return user
