from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import Principal, get_current_principal
from core.database import get_db
from schemas.notification import NotificationOut
from services import notifications


router = APIRouter()


@router.get("/", response_model=list[NotificationOut])
def list_my_notifications(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    return notifications.list_notifications(db, *notifications.inbox_refs(db, principal.user_id))


@router.post("/read-all")
def mark_all_read(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> dict:
    updated = notifications.mark_all_read(db, *notifications.inbox_refs(db, principal.user_id))
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> NotificationOut:
    return notifications.mark_read(db, notification_id, *notifications.inbox_refs(db, principal.user_id))
