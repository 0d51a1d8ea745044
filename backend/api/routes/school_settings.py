from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import require_admin
from core.database import get_db
from schemas.settings import SettingsOut, SettingsUpdate
from services import settings_provider


router = APIRouter()


@router.get("/", response_model=SettingsOut)
def get_settings(db: Session = Depends(get_db)) -> SettingsOut:
    return settings_provider.get_school_settings(db)


@router.patch("/", response_model=SettingsOut)
def update_settings(
    payload: SettingsUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> SettingsOut:
    return settings_provider.update_settings(db, **payload.model_dump(exclude_unset=True))
