from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import Principal, get_current_principal, get_notifier, require_admin, require_reviewer
from core.database import get_db, retry_on_transaction_conflict
from models.change_request import ChangeRequest
from schemas.change_request import ChangeRequestCreate, ChangeRequestDecision, ChangeRequestOut, SubmissionOut
from schemas.conflict import ConflictOut, DetectedConflictOut
from services import change_requests as workflow
from services.change_requests import Annotate, Approve, Decision, Deny
from services.conflict_detector import list_conflicts_for_request
from services.notifications import NotificationSink


router = APIRouter()


def _to_out(db: Session, request: ChangeRequest) -> ChangeRequestOut:
    return ChangeRequestOut(
        id=request.id,
        student_id=request.student_id,
        current_course_id=request.current_course_id,
        new_course_id=request.new_course_id,
        status=str(request.status),
        reviewer_id=request.reviewer_id,
        reason=request.reason,
        comments=request.comments,
        created_at=request.created_at,
        updated_at=request.updated_at,
        conflicts=[ConflictOut.model_validate(c) for c in list_conflicts_for_request(db, request.id)],
    )


def _decision_from_payload(payload: ChangeRequestDecision, principal: Principal) -> Decision:
    reviewer_id = payload.reviewer_id or principal.user_id
    if payload.status == "APPROVED":
        return Approve(reviewer_id=reviewer_id, comments=payload.comments)
    if payload.status == "DENIED":
        return Deny(reviewer_id=reviewer_id, comments=payload.comments)
    return Annotate(reviewer_id=reviewer_id, comments=payload.comments)


@router.post("/", response_model=SubmissionOut, status_code=201)
def submit_request(
    payload: ChangeRequestCreate,
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notifier),
) -> SubmissionOut:
    submission = retry_on_transaction_conflict(
        lambda: workflow.submit_change_request(
            db,
            student_id=payload.student_id,
            current_course_id=payload.current_course_id,
            new_course_id=payload.new_course_id,
            reason=payload.reason,
            notifier=notifier,
        )
    )
    return SubmissionOut(
        request=_to_out(db, submission.request),
        detected_conflicts=[DetectedConflictOut.model_validate(c) for c in submission.conflicts],
    )


@router.get("/", response_model=list[ChangeRequestOut])
def list_requests(
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> list[ChangeRequestOut]:
    return [_to_out(db, r) for r in workflow.list_change_requests(db)]


@router.get("/pending", response_model=list[ChangeRequestOut])
def list_pending(
    _reviewer=Depends(require_reviewer),
    db: Session = Depends(get_db),
) -> list[ChangeRequestOut]:
    return [_to_out(db, r) for r in workflow.list_pending_requests(db)]


@router.get("/student/{student_id}", response_model=list[ChangeRequestOut])
def list_for_student(
    student_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> list[ChangeRequestOut]:
    return [_to_out(db, r) for r in workflow.list_requests_for_student(db, student_id)]


@router.get("/{request_id}", response_model=ChangeRequestOut)
def get_request(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> ChangeRequestOut:
    return _to_out(db, workflow.get_change_request(db, request_id))


@router.put("/{request_id}", response_model=ChangeRequestOut)
def decide_request(
    request_id: uuid.UUID,
    payload: ChangeRequestDecision,
    principal: Principal = Depends(require_reviewer),
    db: Session = Depends(get_db),
    notifier: NotificationSink = Depends(get_notifier),
) -> ChangeRequestOut:
    decision = _decision_from_payload(payload, principal)
    request = retry_on_transaction_conflict(
        lambda: workflow.decide_change_request(db, request_id, decision, notifier=notifier)
    )
    return _to_out(db, request)


@router.delete("/{request_id}")
def remove_request(
    request_id: uuid.UUID,
    _admin=Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict:
    retry_on_transaction_conflict(lambda: workflow.remove_change_request(db, request_id))
    return {"id": str(request_id), "deleted": True}
