from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.deps import require_admin, require_reviewer
from core.database import get_db
from schemas.course_rule import CourseRuleCreate, CourseRuleOut, CourseRuleUpdate, RuleOut
from services import catalog


router = APIRouter()


@router.get("/", response_model=list[CourseRuleOut])
def list_course_rules(
    course_id: uuid.UUID | None = Query(default=None),
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> list[CourseRuleOut]:
    return catalog.list_course_rules(db, course_id=course_id)


@router.get("/global", response_model=list[RuleOut])
def list_global_rules(
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> list[RuleOut]:
    return catalog.list_rules(db)


@router.post("/", response_model=CourseRuleOut, status_code=201)
def create_course_rule(
    payload: CourseRuleCreate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> CourseRuleOut:
    return catalog.add_course_rule(
        db,
        course_id=payload.course_id,
        conflicting_course_id=payload.conflicting_course_id,
        rule_type=payload.type,
        description=payload.description,
        is_active=payload.is_active,
    )


@router.patch("/{rule_id}", response_model=CourseRuleOut)
def update_course_rule(
    rule_id: uuid.UUID,
    payload: CourseRuleUpdate,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> CourseRuleOut:
    return catalog.set_course_rule_active(db, rule_id, payload.is_active)


@router.delete("/{rule_id}")
def delete_course_rule(
    rule_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    catalog.remove_course_rule(db, rule_id)
    return {"ok": True}
