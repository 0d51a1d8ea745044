from __future__ import annotations

import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.database import SessionLocal
from core.security import REVIEWER_ROLES, InvalidTokenError, parse_identity
from services.notifications import DatabaseNotificationSink, NotificationSink


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: uuid.UUID
    role: str


def _extract_token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds is not None and creds.credentials:
        return creds.credentials
    cookie_token = request.cookies.get("access_token")
    return cookie_token or None


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    cached = getattr(request.state, "principal", None)
    if isinstance(cached, Principal):
        return cached

    token = _extract_token(request, creds)
    if not token:
        raise HTTPException(status_code=401, detail="NOT_AUTHENTICATED")
    try:
        user_id, role = parse_identity(token)
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="INVALID_TOKEN")

    principal = Principal(user_id=user_id, role=role)
    request.state.principal = principal
    return principal


def require_reviewer(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role not in REVIEWER_ROLES:
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != "ADMIN":
        raise HTTPException(status_code=403, detail="NOT_AUTHORIZED")
    return principal


def get_notifier() -> NotificationSink:
    return DatabaseNotificationSink(SessionLocal)
