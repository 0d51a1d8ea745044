from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import require_admin, require_reviewer
from core.database import get_db, retry_on_transaction_conflict
from schemas.course import CourseOut
from schemas.schedule import ScheduleCreate, ScheduleOut, ScheduleUpdate
from services import schedule_store
from services.schedule_store import ScheduleView


router = APIRouter()


def _to_out(view: ScheduleView) -> ScheduleOut:
    s = view.schedule
    return ScheduleOut(
        id=s.id,
        student_id=s.student_id,
        semester=s.semester,
        year=int(s.year),
        courses=[CourseOut.model_validate(c) for c in view.courses],
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


@router.get("/", response_model=list[ScheduleOut])
def list_schedules(
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> list[ScheduleOut]:
    return [_to_out(v) for v in schedule_store.list_schedules(db)]


@router.get("/student/{student_id}", response_model=ScheduleOut)
def get_student_schedule(
    student_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return _to_out(schedule_store.get_schedule_for_student(db, student_id))


@router.get("/{schedule_id}", response_model=ScheduleOut)
def get_schedule(
    schedule_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> ScheduleOut:
    return _to_out(schedule_store.get_schedule(db, schedule_id))


@router.post("/", response_model=ScheduleOut, status_code=201)
def create_schedule(
    payload: ScheduleCreate,
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    view = retry_on_transaction_conflict(
        lambda: schedule_store.create_schedule(
            db,
            student_id=payload.student_id,
            course_ids=payload.course_ids,
            semester=payload.semester,
            year=payload.year,
        )
    )
    return _to_out(view)


@router.patch("/{schedule_id}", response_model=ScheduleOut)
def update_schedule(
    schedule_id: uuid.UUID,
    payload: ScheduleUpdate,
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> ScheduleOut:
    view = retry_on_transaction_conflict(
        lambda: schedule_store.update_schedule(
            db,
            schedule_id,
            add_course_ids=payload.add_course_ids,
            remove_course_ids=payload.remove_course_ids,
            semester=payload.semester,
            year=payload.year,
        )
    )
    return _to_out(view)


@router.delete("/{schedule_id}")
def delete_schedule(
    schedule_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    retry_on_transaction_conflict(lambda: schedule_store.delete_schedule(db, schedule_id))
    return {"id": str(schedule_id), "deleted": True}
