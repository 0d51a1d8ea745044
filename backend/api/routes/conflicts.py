from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import require_reviewer
from core.database import get_db
from schemas.conflict import ConflictOut
from services import conflict_detector


router = APIRouter()


@router.get("/", response_model=list[ConflictOut])
def list_conflicts(
    resolved: bool | None = Query(default=None),
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> list[ConflictOut]:
    return conflict_detector.list_conflicts(db, resolved=resolved)


@router.get("/request/{request_id}", response_model=list[ConflictOut])
def list_request_conflicts(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> list[ConflictOut]:
    return conflict_detector.list_conflicts_for_request(db, request_id)


@router.patch("/{conflict_id}/resolve", response_model=ConflictOut)
def resolve_conflict(
    conflict_id: uuid.UUID,
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> ConflictOut:
    return conflict_detector.resolve_conflict(db, conflict_id)
