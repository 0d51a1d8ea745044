from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.database import atomic
from core.errors import ConflictNotFound, CourseNotFound, NoSchedule
from models.conflict import Conflict
from models.course import Course
from models.course_completion import CourseCompletion
from services.catalog import ConstraintCatalog
from services.schedule_store import assigned_courses, find_schedule_for_student
from services.settings_provider import EffectiveSettings, get_settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectedConflict:
    conflict_type: str
    description: str
    course_id: uuid.UUID
    request_id: uuid.UUID


def persist_conflicts(db: Session, conflicts: Iterable[DetectedConflict]) -> list[Conflict]:
    rows: list[Conflict] = []
    for c in conflicts:
        row = Conflict(
            request_id=c.request_id,
            course_id=c.course_id,
            type=c.conflict_type,
            description=c.description,
            resolved=False,
        )
        db.add(row)
        rows.append(row)
    return rows


def _completed_course_ids(db: Session, student_id: uuid.UUID) -> set[uuid.UUID]:
    q = select(CourseCompletion.course_id).where(CourseCompletion.student_id == student_id)
    return set(db.execute(q).scalars().all())


def _check_period(new_course: Course, remaining: list[Course], request_id: uuid.UUID) -> list[DetectedConflict]:
    return [
        DetectedConflict(
            conflict_type="SCHEDULE_OVERLAP",
            description=f"Period conflict with {c.name} (Period {c.period})",
            course_id=c.id,
            request_id=request_id,
        )
        for c in remaining
        if int(c.period) == int(new_course.period)
    ]


def _check_capacity(new_course: Course, request_id: uuid.UUID) -> list[DetectedConflict]:
    if int(new_course.current_enrollment) < int(new_course.capacity):
        return []
    return [
        DetectedConflict(
            conflict_type="CAPACITY",
            description=f"{new_course.name} is at capacity ({new_course.current_enrollment}/{new_course.capacity})",
            course_id=new_course.id,
            request_id=request_id,
        )
    ]


def _check_course_rules(
    db: Session,
    *,
    catalog: ConstraintCatalog,
    student_id: uuid.UUID,
    new_course: Course,
    remaining: list[Course],
    already_flagged: set[uuid.UUID],
    request_id: uuid.UUID,
) -> list[DetectedConflict]:
    conflicts: list[DetectedConflict] = []
    remaining_ids = {c.id for c in remaining}

    required = catalog.targets(new_course.id, "PREREQUISITE")
    if required:
        satisfied = _completed_course_ids(db, student_id) | remaining_ids
        unmet = required - satisfied
        if unmet:
            q = select(Course).where(Course.id.in_(list(unmet))).order_by(Course.course_code.asc())
            for prereq in db.execute(q).scalars().all():
                conflicts.append(
                    DetectedConflict(
                        conflict_type="PREREQUISITE",
                        description=f"{new_course.name} requires {prereq.name}",
                        course_id=prereq.id,
                        request_id=request_id,
                    )
                )

    # Overlap rules are declared one way but hold both ways.
    for c in remaining:
        if c.id in already_flagged:
            continue
        if c.id in catalog.targets(new_course.id, "SCHEDULE_OVERLAP") or new_course.id in catalog.targets(
            c.id, "SCHEDULE_OVERLAP"
        ):
            conflicts.append(
                DetectedConflict(
                    conflict_type="SCHEDULE_OVERLAP",
                    description=f"{new_course.name} overlaps with {c.name}",
                    course_id=c.id,
                    request_id=request_id,
                )
            )

    return conflicts


def detect_conflicts(
    db: Session,
    *,
    student_id: uuid.UUID,
    current_course_id: uuid.UUID,
    new_course_id: uuid.UUID,
    request_id: uuid.UUID,
    settings: EffectiveSettings | None = None,
    catalog: ConstraintCatalog | None = None,
) -> list[DetectedConflict]:
    """Evaluate a proposed swap and record what blocks it.

    Runs inside the caller's transaction. When conflicts are not allowed the
    detected rows are added to the session unresolved; otherwise they are only
    returned as advice. The returned list is the same either way.
    """

    schedule = find_schedule_for_student(db, student_id)
    if schedule is None:
        raise NoSchedule("Student does not have a schedule", student_id=student_id)
    new_course = db.get(Course, new_course_id)
    if new_course is None:
        raise CourseNotFound(f"New course with ID {new_course_id} not found", course_id=new_course_id)

    remaining = [c for c in assigned_courses(db, schedule.id) if c.id != current_course_id]

    conflicts = _check_period(new_course, remaining, request_id)
    conflicts += _check_capacity(new_course, request_id)
    conflicts += _check_course_rules(
        db,
        catalog=catalog or ConstraintCatalog.load(db),
        student_id=student_id,
        new_course=new_course,
        remaining=remaining,
        already_flagged={c.course_id for c in conflicts if c.conflict_type == "SCHEDULE_OVERLAP"},
        request_id=request_id,
    )

    settings = settings or get_settings(db)
    if conflicts and not settings.allow_conflicts:
        persist_conflicts(db, conflicts)
        db.flush()

    if conflicts:
        logger.info(
            "Request %s: %d conflict(s) detected (%s)%s",
            request_id,
            len(conflicts),
            ", ".join(c.conflict_type for c in conflicts),
            "" if not settings.allow_conflicts else " [advisory only]",
        )
    return conflicts


def list_conflicts(db: Session, *, resolved: bool | None = None) -> list[Conflict]:
    q = select(Conflict).order_by(Conflict.created_at.desc())
    if resolved is not None:
        q = q.where(Conflict.resolved.is_(resolved))
    return db.execute(q).scalars().all()


def list_conflicts_for_request(db: Session, request_id: uuid.UUID) -> list[Conflict]:
    q = select(Conflict).where(Conflict.request_id == request_id).order_by(Conflict.created_at.desc())
    return db.execute(q).scalars().all()


def count_unresolved(db: Session, request_id: uuid.UUID) -> int:
    q = (
        select(func.count())
        .select_from(Conflict)
        .where(Conflict.request_id == request_id)
        .where(Conflict.resolved.is_(False))
    )
    return int(db.execute(q).scalar_one())


def resolve_conflict(db: Session, conflict_id: uuid.UUID) -> Conflict:
    conflict = db.get(Conflict, conflict_id)
    if conflict is None:
        raise ConflictNotFound(f"Conflict with ID {conflict_id} not found", conflict_id=conflict_id)
    with atomic(db):
        conflict.resolved = True
    db.refresh(conflict)
    logger.info("Conflict %s on request %s resolved", conflict_id, conflict.request_id)
    return conflict
