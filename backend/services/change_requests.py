from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Union

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from core.database import atomic
from core.errors import (
    AlreadyAssigned,
    AlreadyTerminal,
    CapacityExceeded,
    CourseNotFound,
    InvalidInput,
    NoSchedule,
    NotAssigned,
    RequestNotFound,
    StudentNotFound,
    TransactionConflict,
    UnresolvedConflicts,
)
from models.change_request import TERMINAL_STATUSES, ChangeRequest
from models.conflict import Conflict
from models.course import Course
from models.student import Student
from services.conflict_detector import DetectedConflict, count_unresolved, detect_conflicts
from services.notifications import (
    NotificationIntent,
    NotificationSink,
    dispatch_intents,
    reviewer_refs,
    student_ref,
)
from services.schedule_store import assigned_courses, find_schedule_for_student, swap_course


logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 500


@dataclass(frozen=True)
class Approve:
    reviewer_id: uuid.UUID | None = None
    comments: str | None = None


@dataclass(frozen=True)
class Deny:
    reviewer_id: uuid.UUID | None = None
    comments: str | None = None


@dataclass(frozen=True)
class Annotate:
    """Reviewer/comment update that leaves the request PENDING."""

    reviewer_id: uuid.UUID | None = None
    comments: str | None = None


Decision = Union[Approve, Deny, Annotate]


@dataclass(frozen=True)
class Submission:
    request: ChangeRequest
    conflicts: list[DetectedConflict]


def _get_course(db: Session, course_id: uuid.UUID, *, label: str) -> Course:
    course = db.get(Course, course_id)
    if course is None:
        raise CourseNotFound(f"{label} course with ID {course_id} not found", course_id=course_id)
    return course


def _check_text(field: str, value: str | None, *, required: bool) -> None:
    if value is None or not value.strip():
        if required:
            raise InvalidInput(f"{field} must not be empty", field=field)
        return
    if len(value) > MAX_TEXT_LENGTH:
        raise InvalidInput(f"{field} must be at most {MAX_TEXT_LENGTH} characters", field=field)


def submit_change_request(
    db: Session,
    *,
    student_id: uuid.UUID,
    current_course_id: uuid.UUID,
    new_course_id: uuid.UUID,
    reason: str,
    notifier: NotificationSink | None = None,
) -> Submission:
    _check_text("reason", reason, required=True)

    student = db.get(Student, student_id)
    if student is None:
        raise StudentNotFound(f"Student with ID {student_id} not found", student_id=student_id)
    schedule = find_schedule_for_student(db, student_id)
    if schedule is None:
        raise NoSchedule("Student does not have a schedule", student_id=student_id)

    current_course = _get_course(db, current_course_id, label="Current")
    new_course = _get_course(db, new_course_id, label="New")

    assigned_ids = {c.id for c in assigned_courses(db, schedule.id)}
    if current_course.id not in assigned_ids:
        raise NotAssigned("Current course is not in student's schedule", course_id=current_course.id)
    if new_course.id in assigned_ids:
        raise AlreadyAssigned("New course is already in student's schedule", course_id=new_course.id)

    with atomic(db):
        request = ChangeRequest(
            student_id=student_id,
            current_course_id=current_course.id,
            new_course_id=new_course.id,
            status="PENDING",
            reason=reason,
        )
        db.add(request)
        db.flush()
        conflicts = detect_conflicts(
            db,
            student_id=student_id,
            current_course_id=current_course.id,
            new_course_id=new_course.id,
            request_id=request.id,
        )

    logger.info(
        "Change request %s submitted: student %s, %s -> %s (%d conflicts)",
        request.id,
        student_id,
        current_course.course_code,
        new_course.course_code,
        len(conflicts),
    )

    message = f"New schedule change request from {student.name}: {current_course.name} to {new_course.name}"
    dispatch_intents(
        notifier,
        [NotificationIntent(recipient_ref=ref, message=message, type="REQUEST_UPDATE") for ref in reviewer_refs(db)],
    )
    return Submission(request=request, conflicts=conflicts)


def _guarded_update(db: Session, request: ChangeRequest, **values) -> None:
    # Only a still-PENDING row may change; losing this race means another
    # reviewer decided first.
    result = db.execute(
        update(ChangeRequest)
        .where(ChangeRequest.id == request.id)
        .where(ChangeRequest.status == "PENDING")
        .values(updated_at=func.now(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise TransactionConflict("Request was decided concurrently", request_id=request.id)


def _review_values(decision: Decision) -> dict:
    values: dict = {}
    if decision.reviewer_id is not None:
        values["reviewer_id"] = decision.reviewer_id
    if decision.comments is not None:
        values["comments"] = decision.comments
    return values


def _approve(db: Session, request: ChangeRequest, decision: Approve, current: Course, new: Course) -> None:
    unresolved = count_unresolved(db, request.id)
    if unresolved:
        raise UnresolvedConflicts(
            "Cannot approve request with unresolved conflicts",
            request_id=request.id,
            unresolved=unresolved,
        )
    # Advisory re-check; the guarded increment in swap_course is authoritative.
    if int(new.current_enrollment) >= int(new.capacity):
        raise CapacityExceeded(f"New course {new.name} is at capacity", course_id=new.id)

    with atomic(db):
        _guarded_update(db, request, status="APPROVED", **_review_values(decision))
        schedule = find_schedule_for_student(db, request.student_id, for_update=True)
        if schedule is None:
            raise NoSchedule("Student does not have a schedule", student_id=request.student_id)
        swap_course(db, schedule_id=schedule.id, remove_course=current, add_course=new)


def decide_change_request(
    db: Session,
    request_id: uuid.UUID,
    decision: Decision,
    *,
    notifier: NotificationSink | None = None,
) -> ChangeRequest:
    """Apply a reviewer decision to a PENDING request.

    Approve swaps the courses and moves both enrollment counters in one
    transaction; Deny and Annotate never touch schedules or enrollment.
    Terminal requests reject every decision.
    """

    if not isinstance(decision, (Approve, Deny, Annotate)):
        raise InvalidInput("Unsupported decision", decision=type(decision).__name__)
    _check_text("comments", decision.comments, required=False)

    request = db.get(ChangeRequest, request_id)
    if request is None:
        raise RequestNotFound(f"Request with ID {request_id} not found", request_id=request_id)
    if request.status in TERMINAL_STATUSES:
        raise AlreadyTerminal(f"Request is already {request.status}", request_id=request_id, status=request.status)

    current = _get_course(db, request.current_course_id, label="Current")
    new = _get_course(db, request.new_course_id, label="New")
    change = f"{current.name} to {new.name}"
    recipient = student_ref(request.student_id)

    if isinstance(decision, Approve):
        _approve(db, request, decision, current, new)
        intent = NotificationIntent(
            recipient_ref=recipient,
            message=f"Your request to change from {change} has been approved",
            type="REQUEST_APPROVED",
        )
        logger.info("Change request %s approved by %s", request_id, decision.reviewer_id)
    elif isinstance(decision, Deny):
        with atomic(db):
            _guarded_update(db, request, status="DENIED", **_review_values(decision))
        suffix = f": {decision.comments}" if decision.comments else ""
        intent = NotificationIntent(
            recipient_ref=recipient,
            message=f"Your request to change from {change} has been denied{suffix}",
            type="REQUEST_DENIED",
        )
        logger.info("Change request %s denied by %s", request_id, decision.reviewer_id)
    else:
        with atomic(db):
            _guarded_update(db, request, **_review_values(decision))
        intent = NotificationIntent(
            recipient_ref=recipient,
            message="Your schedule change request has been updated",
            type="REQUEST_UPDATE",
        )

    dispatch_intents(notifier, [intent])
    return get_change_request(db, request_id)


def remove_change_request(db: Session, request_id: uuid.UUID) -> None:
    request = db.get(ChangeRequest, request_id)
    if request is None:
        raise RequestNotFound(f"Request with ID {request_id} not found", request_id=request_id)

    with atomic(db):
        db.execute(
            delete(Conflict).where(Conflict.request_id == request_id).execution_options(synchronize_session=False)
        )
        db.delete(request)

    logger.info("Change request %s removed", request_id)


def get_change_request(db: Session, request_id: uuid.UUID) -> ChangeRequest:
    request = db.get(ChangeRequest, request_id, populate_existing=True)
    if request is None:
        raise RequestNotFound(f"Request with ID {request_id} not found", request_id=request_id)
    return request


def list_change_requests(db: Session, *, status: str | None = None) -> list[ChangeRequest]:
    q = select(ChangeRequest).order_by(ChangeRequest.created_at.desc())
    if status is not None:
        q = q.where(ChangeRequest.status == status)
    return db.execute(q).scalars().all()


def list_pending_requests(db: Session) -> list[ChangeRequest]:
    q = select(ChangeRequest).where(ChangeRequest.status == "PENDING").order_by(ChangeRequest.created_at.asc())
    return db.execute(q).scalars().all()


def list_requests_for_student(db: Session, student_id: uuid.UUID) -> list[ChangeRequest]:
    if db.get(Student, student_id) is None:
        raise StudentNotFound(f"Student with ID {student_id} not found", student_id=student_id)
    q = select(ChangeRequest).where(ChangeRequest.student_id == student_id).order_by(ChangeRequest.created_at.desc())
    return db.execute(q).scalars().all()
