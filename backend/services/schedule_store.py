from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from core.database import atomic
from core.errors import (
    AlreadyAssigned,
    AlreadyExists,
    CapacityExceeded,
    CourseNotFound,
    EmptySelection,
    InvalidInput,
    LoadExceeded,
    NoSchedule,
    NotInSchedule,
    PeriodConflict,
    ScheduleNotFound,
    StudentNotFound,
    TransactionConflict,
)
from models.course import Course
from models.schedule import Schedule, ScheduleCourse
from models.student import Student
from services.settings_provider import get_settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleView:
    schedule: Schedule
    courses: list[Course]

    @property
    def course_ids(self) -> set[uuid.UUID]:
        return {c.id for c in self.courses}


def find_schedule_for_student(db: Session, student_id: uuid.UUID, *, for_update: bool = False) -> Schedule | None:
    q = select(Schedule).where(Schedule.student_id == student_id)
    if for_update:
        q = q.with_for_update()
    return db.execute(q).scalars().first()


def assigned_courses(db: Session, schedule_id: uuid.UUID) -> list[Course]:
    """Courses currently in the schedule, ordered by period."""

    q = (
        select(Course)
        .join(ScheduleCourse, ScheduleCourse.course_id == Course.id)
        .where(ScheduleCourse.schedule_id == schedule_id)
        .order_by(Course.period.asc())
    )
    return list(db.execute(q).scalars().all())


def get_schedule(db: Session, schedule_id: uuid.UUID) -> ScheduleView:
    schedule = db.get(Schedule, schedule_id)
    if schedule is None:
        raise ScheduleNotFound(f"Schedule with ID {schedule_id} not found", schedule_id=schedule_id)
    return ScheduleView(schedule=schedule, courses=assigned_courses(db, schedule.id))


def get_schedule_for_student(db: Session, student_id: uuid.UUID) -> ScheduleView:
    if db.get(Student, student_id) is None:
        raise StudentNotFound(f"Student with ID {student_id} not found", student_id=student_id)
    schedule = find_schedule_for_student(db, student_id)
    if schedule is None:
        raise NoSchedule(f"Schedule not found for student ID {student_id}", student_id=student_id)
    return ScheduleView(schedule=schedule, courses=assigned_courses(db, schedule.id))


def list_schedules(db: Session) -> list[ScheduleView]:
    schedules = db.execute(select(Schedule).order_by(Schedule.created_at.asc())).scalars().all()
    if not schedules:
        return []

    rows = db.execute(
        select(ScheduleCourse.schedule_id, Course)
        .join(Course, Course.id == ScheduleCourse.course_id)
        .where(ScheduleCourse.schedule_id.in_([s.id for s in schedules]))
        .order_by(Course.period.asc())
    ).all()
    by_schedule: dict[uuid.UUID, list[Course]] = defaultdict(list)
    for schedule_id, course in rows:
        by_schedule[schedule_id].append(course)
    return [ScheduleView(schedule=s, courses=by_schedule.get(s.id, [])) for s in schedules]


def _load_courses(db: Session, course_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, Course]:
    if not course_ids:
        return {}
    found = db.execute(select(Course).where(Course.id.in_(list(course_ids)))).scalars().all()
    by_id = {c.id: c for c in found}
    missing = [cid for cid in course_ids if cid not in by_id]
    if missing:
        raise CourseNotFound(
            "One or more courses not found",
            course_ids=[str(cid) for cid in missing],
        )
    return by_id


def _ensure_unique_ids(ids: Sequence[uuid.UUID]) -> None:
    if len(set(ids)) != len(ids):
        raise InvalidInput("Course list contains duplicates", course_ids=[str(i) for i in ids])


def _ensure_distinct_periods(courses: Iterable[Course]) -> None:
    seen: dict[int, Course] = {}
    for c in courses:
        other = seen.get(int(c.period))
        if other is not None:
            raise PeriodConflict(
                f"{c.course_code} and {other.course_code} both meet in period {c.period}",
                period=int(c.period),
                course_id=c.id,
                conflicting_course_id=other.id,
            )
        seen[int(c.period)] = c


def _ensure_seats(courses: Iterable[Course]) -> None:
    full = [c for c in courses if int(c.current_enrollment) >= int(c.capacity)]
    if full:
        raise CapacityExceeded(
            f"Some courses are at capacity: {', '.join(c.name for c in full)}",
            course_ids=[str(c.id) for c in full],
        )


def _ensure_load(db: Session, course_count: int) -> None:
    if course_count == 0:
        raise EmptySelection("Schedule must include at least one course")
    max_load = get_settings(db).max_course_load
    if course_count > max_load:
        raise LoadExceeded(
            f"Schedule exceeds maximum course load of {max_load}",
            max_course_load=max_load,
            course_count=course_count,
        )


def _lock_schedule(db: Session, schedule_id: uuid.UUID) -> None:
    # Touching the row takes its write lock on PostgreSQL and SQLite alike, so
    # every read after this sees the last committed membership.
    result = db.execute(
        update(Schedule)
        .where(Schedule.id == schedule_id)
        .values(updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ScheduleNotFound(f"Schedule with ID {schedule_id} not found", schedule_id=schedule_id)


def _increment_enrollment(db: Session, course: Course) -> None:
    # The seat check and the increment are one statement, so a seat taken by a
    # concurrent transaction after validation cannot be handed out twice.
    result = db.execute(
        update(Course)
        .where(Course.id == course.id)
        .where(Course.current_enrollment < Course.capacity)
        .values(current_enrollment=Course.current_enrollment + 1)
        .execution_options(synchronize_session=False)
    )
    db.expire(course, ["current_enrollment"])
    if result.rowcount != 1:
        raise CapacityExceeded(f"{course.name} is at capacity", course_id=course.id)


def _decrement_enrollment(db: Session, course: Course) -> None:
    result = db.execute(
        update(Course)
        .where(Course.id == course.id)
        .where(Course.current_enrollment > 0)
        .values(current_enrollment=Course.current_enrollment - 1)
        .execution_options(synchronize_session=False)
    )
    db.expire(course, ["current_enrollment"])
    if result.rowcount != 1:
        raise TransactionConflict(f"Enrollment for {course.name} changed concurrently", course_id=course.id)


def _apply_membership(
    db: Session,
    schedule_id: uuid.UUID,
    *,
    remove: Sequence[Course],
    add: Sequence[Course],
) -> None:
    # Removals go first so a vacated period can be reused by an added course.
    if remove:
        result = db.execute(
            delete(ScheduleCourse)
            .where(ScheduleCourse.schedule_id == schedule_id)
            .where(ScheduleCourse.course_id.in_([c.id for c in remove]))
            .execution_options(synchronize_session=False)
        )
        # A seat is released only for a membership row this transaction removed.
        if result.rowcount != len(remove):
            raise TransactionConflict("Schedule membership changed concurrently", schedule_id=schedule_id)
        for c in remove:
            _decrement_enrollment(db, c)

    for c in add:
        db.add(ScheduleCourse(schedule_id=schedule_id, course_id=c.id, period=int(c.period)))
    db.flush()
    for c in add:
        _increment_enrollment(db, c)


def create_schedule(
    db: Session,
    *,
    student_id: uuid.UUID,
    course_ids: Sequence[uuid.UUID],
    semester: str,
    year: int,
) -> ScheduleView:
    if db.get(Student, student_id) is None:
        raise StudentNotFound(f"Student with ID {student_id} not found", student_id=student_id)
    if find_schedule_for_student(db, student_id) is not None:
        raise AlreadyExists("Student already has a schedule", student_id=student_id)

    ids = list(course_ids)
    if not ids:
        raise EmptySelection("Schedule must include at least one course")
    _ensure_unique_ids(ids)

    by_id = _load_courses(db, ids)
    courses = [by_id[i] for i in ids]
    _ensure_load(db, len(courses))
    _ensure_distinct_periods(courses)
    _ensure_seats(courses)

    with atomic(db):
        schedule = Schedule(student_id=student_id, semester=semester, year=int(year))
        db.add(schedule)
        db.flush()
        _apply_membership(db, schedule.id, remove=[], add=courses)

    logger.info("Schedule %s created for student %s with %d courses", schedule.id, student_id, len(courses))
    return get_schedule(db, schedule.id)


def update_schedule(
    db: Session,
    schedule_id: uuid.UUID,
    *,
    add_course_ids: Sequence[uuid.UUID] = (),
    remove_course_ids: Sequence[uuid.UUID] = (),
    semester: str | None = None,
    year: int | None = None,
) -> ScheduleView:
    """Add and remove courses, and change the term, as one unit.

    Membership, load, seats and periods are checked after the schedule row is
    locked, against what the lock holder sees, never against earlier reads.
    """

    schedule = db.get(Schedule, schedule_id)
    if schedule is None:
        raise ScheduleNotFound(f"Schedule with ID {schedule_id} not found", schedule_id=schedule_id)

    add_ids = list(add_course_ids)
    remove_ids = list(remove_course_ids)
    _ensure_unique_ids(add_ids)
    _ensure_unique_ids(remove_ids)
    both = set(add_ids) & set(remove_ids)
    if both:
        raise InvalidInput("A course cannot be added and removed at once", course_ids=[str(i) for i in both])

    with atomic(db):
        _lock_schedule(db, schedule_id)

        current = assigned_courses(db, schedule_id)
        current_by_id = {c.id: c for c in current}

        not_assigned = [i for i in remove_ids if i not in current_by_id]
        if not_assigned:
            raise NotInSchedule(
                "One or more courses to remove are not in the schedule",
                course_ids=[str(i) for i in not_assigned],
            )

        added_by_id = _load_courses(db, add_ids)
        already = [i for i in add_ids if i in current_by_id]
        if already:
            raise AlreadyAssigned(
                "One or more courses to add are already in the schedule",
                course_ids=[str(i) for i in already],
            )

        to_add = [added_by_id[i] for i in add_ids]
        to_remove = [current_by_id[i] for i in remove_ids]
        removed = set(remove_ids)
        resulting = [c for c in current if c.id not in removed] + to_add

        _ensure_load(db, len(resulting))
        _ensure_seats(to_add)
        _ensure_distinct_periods(resulting)

        if to_add or to_remove:
            _apply_membership(db, schedule_id, remove=to_remove, add=to_add)
        if semester is not None:
            schedule.semester = semester
        if year is not None:
            schedule.year = int(year)

    logger.info(
        "Schedule %s updated (+%d/-%d courses)",
        schedule_id,
        len(to_add),
        len(to_remove),
    )
    return get_schedule(db, schedule_id)


def swap_course(db: Session, *, schedule_id: uuid.UUID, remove_course: Course, add_course: Course) -> None:
    """Swap one assigned course for another inside the caller's transaction.

    Locks the schedule, re-validates membership and period uniqueness against
    the current rows and takes the added course's seat with the guarded
    increment. Does not commit.
    """

    _lock_schedule(db, schedule_id)
    current = assigned_courses(db, schedule_id)
    current_ids = {c.id for c in current}
    if remove_course.id not in current_ids:
        raise NotInSchedule(
            f"{remove_course.course_code} is no longer in the schedule",
            course_id=remove_course.id,
        )
    if add_course.id in current_ids:
        raise AlreadyAssigned(f"{add_course.course_code} is already in the schedule", course_id=add_course.id)

    _ensure_distinct_periods([c for c in current if c.id != remove_course.id] + [add_course])
    _apply_membership(db, schedule_id, remove=[remove_course], add=[add_course])


def delete_schedule(db: Session, schedule_id: uuid.UUID) -> None:
    schedule = db.get(Schedule, schedule_id)
    if schedule is None:
        raise ScheduleNotFound(f"Schedule with ID {schedule_id} not found", schedule_id=schedule_id)

    with atomic(db):
        _lock_schedule(db, schedule_id)
        courses = assigned_courses(db, schedule_id)
        _apply_membership(db, schedule_id, remove=courses, add=[])
        db.delete(schedule)

    logger.info("Schedule %s deleted; released %d seats", schedule_id, len(courses))
