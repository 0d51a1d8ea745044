"""Tests for the change request workflow: submission, review and notifications."""

import uuid

import pytest

from core.errors import (
    AlreadyAssigned,
    AlreadyTerminal,
    CapacityExceeded,
    InvalidInput,
    NoSchedule,
    NotAssigned,
    PeriodConflict,
    RequestNotFound,
    StudentNotFound,
    UnresolvedConflicts,
)
from models import Course
from services import change_requests as workflow
from services.change_requests import Annotate, Approve, Deny
from services.conflict_detector import list_conflicts_for_request, resolve_conflict
from services.notifications import student_ref, user_ref
from services.schedule_store import get_schedule_for_student


def _submit(school, current, new, reason="Schedule change", notifier=None):
    return workflow.submit_change_request(
        school.db,
        student_id=school.alice_id,
        current_course_id=school.course_ids[current],
        new_course_id=school.course_ids[new],
        reason=reason,
        notifier=notifier,
    )


def _enrollment(school, code) -> int:
    school.db.expire_all()
    return school.db.get(Course, school.course_ids[code]).current_enrollment


def _alice_codes(school) -> list[str]:
    return [c.course_code for c in get_schedule_for_student(school.db, school.alice_id).courses]


# ─── Scenarios ───────────────────────────────────────────────────────────────

class TestCleanSwap:
    """MATH101 -> MATH201: same period, one seat left."""

    def test_submission_is_pending_without_conflicts(self, school, alice_schedule, sink):
        submission = _submit(school, "MATH101", "MATH201", notifier=sink)
        assert submission.request.status == "PENDING"
        assert submission.conflicts == []
        assert list_conflicts_for_request(school.db, submission.request.id) == []

    def test_reviewers_notified_on_submission(self, school, alice_schedule, sink):
        _submit(school, "MATH101", "MATH201", notifier=sink)
        assert [i.recipient_ref for i in sink.delivered] == [user_ref(school.counselor_id)]
        assert sink.delivered[0].type == "REQUEST_UPDATE"
        assert sink.delivered[0].message == "New schedule change request from Alice: Algebra I to Geometry"

    def test_approval_swaps_course_and_moves_seats(self, school, alice_schedule, sink):
        submission = _submit(school, "MATH101", "MATH201")
        decided = workflow.decide_change_request(
            school.db,
            submission.request.id,
            Approve(reviewer_id=school.counselor_id, comments="Approved"),
            notifier=sink,
        )
        assert decided.status == "APPROVED"
        assert decided.reviewer_id == school.counselor_id
        assert decided.comments == "Approved"
        assert _enrollment(school, "MATH201") == 25
        assert _enrollment(school, "MATH101") == 0
        assert _alice_codes(school) == ["MATH201", "BIO101"]

        (intent,) = sink.for_recipient(student_ref(school.alice_id))
        assert intent.type == "REQUEST_APPROVED"
        assert intent.message == "Your request to change from Algebra I to Geometry has been approved"


class TestOverlappingSwap:
    """MATH101 -> PHYS201: PHYS201 meets in period 2 alongside BIO101."""

    def test_submission_records_overlap(self, school, alice_schedule):
        submission = _submit(school, "MATH101", "PHYS201")
        assert [(c.conflict_type, c.course_id) for c in submission.conflicts] == [
            ("SCHEDULE_OVERLAP", school.course_ids["BIO101"])
        ]
        assert len(list_conflicts_for_request(school.db, submission.request.id)) == 1

    def test_approval_blocked_by_unresolved_conflict(self, school, alice_schedule, sink):
        submission = _submit(school, "MATH101", "PHYS201")
        with pytest.raises(UnresolvedConflicts):
            workflow.decide_change_request(school.db, submission.request.id, Approve(), notifier=sink)

        assert workflow.get_change_request(school.db, submission.request.id).status == "PENDING"
        assert _alice_codes(school) == ["MATH101", "BIO101"]
        assert _enrollment(school, "PHYS201") == 0
        assert sink.delivered == []

    def test_resolved_overlap_still_fails_period_check(self, school, alice_schedule):
        """Resolving the record does not make two courses share a period."""
        submission = _submit(school, "MATH101", "PHYS201")
        (row,) = list_conflicts_for_request(school.db, submission.request.id)
        resolve_conflict(school.db, row.id)

        with pytest.raises(PeriodConflict):
            workflow.decide_change_request(school.db, submission.request.id, Approve())
        assert workflow.get_change_request(school.db, submission.request.id).status == "PENDING"
        assert _enrollment(school, "PHYS201") == 0
        assert _enrollment(school, "MATH101") == 1


# ─── Review outcomes ─────────────────────────────────────────────────────────

class TestDecisions:
    def test_deny_leaves_schedule_alone(self, school, alice_schedule, sink):
        submission = _submit(school, "MATH101", "MATH201")
        decided = workflow.decide_change_request(
            school.db,
            submission.request.id,
            Deny(reviewer_id=school.counselor_id, comments="Class is full next term"),
            notifier=sink,
        )
        assert decided.status == "DENIED"
        assert _enrollment(school, "MATH201") == 24
        assert _enrollment(school, "MATH101") == 1
        assert _alice_codes(school) == ["MATH101", "BIO101"]
        (intent,) = sink.delivered
        assert intent.type == "REQUEST_DENIED"
        assert intent.message == (
            "Your request to change from Algebra I to Geometry has been denied: Class is full next term"
        )

    def test_deny_without_comments(self, school, alice_schedule, sink):
        submission = _submit(school, "MATH101", "MATH201")
        workflow.decide_change_request(school.db, submission.request.id, Deny(), notifier=sink)
        assert sink.delivered[0].message == "Your request to change from Algebra I to Geometry has been denied"

    def test_annotate_keeps_request_pending(self, school, alice_schedule, sink):
        submission = _submit(school, "MATH101", "MATH201")
        decided = workflow.decide_change_request(
            school.db,
            submission.request.id,
            Annotate(reviewer_id=school.counselor_id, comments="Checking with the teacher"),
            notifier=sink,
        )
        assert decided.status == "PENDING"
        assert decided.comments == "Checking with the teacher"
        assert decided.reviewer_id == school.counselor_id
        assert sink.delivered[0].type == "REQUEST_UPDATE"

    @pytest.mark.parametrize("second", [Approve(), Deny(), Annotate(comments="late note")])
    def test_terminal_requests_reject_further_decisions(self, school, alice_schedule, second):
        submission = _submit(school, "MATH101", "MATH201")
        workflow.decide_change_request(school.db, submission.request.id, Deny())
        with pytest.raises(AlreadyTerminal):
            workflow.decide_change_request(school.db, submission.request.id, second)
        assert _enrollment(school, "MATH201") == 24
        assert workflow.get_change_request(school.db, submission.request.id).status == "DENIED"

    def test_approval_rechecks_capacity(self, school, alice_schedule):
        """A seat taken after submission blocks approval."""
        submission = _submit(school, "MATH101", "MATH201")
        school.courses["MATH201"].current_enrollment = 25
        school.db.commit()
        with pytest.raises(CapacityExceeded):
            workflow.decide_change_request(school.db, submission.request.id, Approve())
        assert workflow.get_change_request(school.db, submission.request.id).status == "PENDING"
        assert _alice_codes(school) == ["MATH101", "BIO101"]

    def test_comments_too_long(self, school, alice_schedule):
        submission = _submit(school, "MATH101", "MATH201")
        with pytest.raises(InvalidInput):
            workflow.decide_change_request(school.db, submission.request.id, Deny(comments="x" * 501))

    def test_unknown_request(self, school):
        with pytest.raises(RequestNotFound):
            workflow.decide_change_request(school.db, uuid.uuid4(), Deny())

    def test_unsupported_decision(self, school, alice_schedule):
        submission = _submit(school, "MATH101", "MATH201")
        with pytest.raises(InvalidInput):
            workflow.decide_change_request(school.db, submission.request.id, "APPROVED")


# ─── Submission validation ───────────────────────────────────────────────────

class TestSubmissionValidation:
    def test_current_course_must_be_assigned(self, school, alice_schedule):
        with pytest.raises(NotAssigned):
            _submit(school, "ENG101", "HIST101")

    def test_new_course_must_not_be_assigned(self, school, alice_schedule):
        with pytest.raises(AlreadyAssigned):
            _submit(school, "MATH101", "BIO101")

    def test_student_needs_schedule(self, school):
        with pytest.raises(NoSchedule):
            _submit(school, "MATH101", "MATH201")

    def test_unknown_student(self, school):
        with pytest.raises(StudentNotFound):
            workflow.submit_change_request(
                school.db,
                student_id=uuid.uuid4(),
                current_course_id=school.course_ids["MATH101"],
                new_course_id=school.course_ids["MATH201"],
                reason="x",
            )

    @pytest.mark.parametrize("reason", ["", "   ", "x" * 501])
    def test_reason_validated(self, school, alice_schedule, reason):
        with pytest.raises(InvalidInput):
            _submit(school, "MATH101", "MATH201", reason=reason)
        assert workflow.list_change_requests(school.db) == []

    def test_failing_sink_does_not_undo_submission(self, school, alice_schedule, failing_sink):
        submission = _submit(school, "MATH101", "MATH201", notifier=failing_sink)
        assert failing_sink.attempts == 1
        assert workflow.get_change_request(school.db, submission.request.id).status == "PENDING"


# ─── Listing and removal ─────────────────────────────────────────────────────

class TestRequestQueries:
    def test_pending_and_status_filters(self, school, alice_schedule):
        first = _submit(school, "MATH101", "MATH201")
        second = _submit(school, "BIO101", "ENG101")
        workflow.decide_change_request(school.db, first.request.id, Deny())

        assert [r.id for r in workflow.list_pending_requests(school.db)] == [second.request.id]
        assert [r.id for r in workflow.list_change_requests(school.db, status="DENIED")] == [first.request.id]
        assert {r.id for r in workflow.list_requests_for_student(school.db, school.alice_id)} == {
            first.request.id,
            second.request.id,
        }
        assert workflow.list_requests_for_student(school.db, school.bob_id) == []

    def test_remove_drops_conflicts(self, school, alice_schedule):
        submission = _submit(school, "MATH101", "PHYS201")
        workflow.remove_change_request(school.db, submission.request.id)
        assert list_conflicts_for_request(school.db, submission.request.id) == []
        with pytest.raises(RequestNotFound):
            workflow.get_change_request(school.db, submission.request.id)
