from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from core.config import settings
from models.user import USER_ROLES


# Roles allowed to review change requests.
REVIEWER_ROLES = frozenset({"ADMIN", "COUNSELOR"})
ROLES = frozenset(USER_ROLES)


class InvalidTokenError(ValueError):
    """Token is unsigned, expired or missing the identity claims."""


def create_access_token(*, user_id: str, role: str, expires_minutes: int = 60) -> str:
    """Mint a token the way the identity service does. Used by scripts and tests."""

    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def parse_identity(token: str) -> tuple[uuid.UUID, str]:
    """Return ``(user_id, role)`` from a verified token."""

    try:
        payload = decode_token(token)
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError("sub is not a user id") from exc

    role = str(payload.get("role") or "").strip().upper()
    if role not in ROLES:
        raise InvalidTokenError(f"unknown role {role!r}")
    return user_id, role
