from __future__ import annotations

from typing import Any


class SchedulingError(Exception):
    """Base class for typed failures reported to callers of the scheduling engine.

    Every failure carries a stable ``code`` (rendered verbatim by the HTTP layer),
    a human readable message and ``details`` naming the offending entities.
    Only ``retryable`` failures should be retried automatically.
    """

    code = "SCHEDULING_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
            "retryable": self.retryable,
        }


class NotFound(SchedulingError):
    code = "NOT_FOUND"
    status_code = 404


class StudentNotFound(NotFound):
    code = "STUDENT_NOT_FOUND"


class CourseNotFound(NotFound):
    code = "COURSE_NOT_FOUND"


class ScheduleNotFound(NotFound):
    code = "SCHEDULE_NOT_FOUND"


class NoSchedule(NotFound):
    code = "NO_SCHEDULE"


class RequestNotFound(NotFound):
    code = "REQUEST_NOT_FOUND"


class ConflictNotFound(NotFound):
    code = "CONFLICT_NOT_FOUND"


class CourseRuleNotFound(NotFound):
    code = "COURSE_RULE_NOT_FOUND"


class NotificationNotFound(NotFound):
    code = "NOTIFICATION_NOT_FOUND"


class AlreadyExists(SchedulingError):
    code = "ALREADY_EXISTS"
    status_code = 409


class AlreadyAssigned(SchedulingError):
    code = "ALREADY_ASSIGNED"
    status_code = 409


class AlreadyTerminal(SchedulingError):
    code = "ALREADY_TERMINAL"
    status_code = 409


class InvalidInput(SchedulingError):
    code = "INVALID_INPUT"
    status_code = 422


class EmptySelection(InvalidInput):
    code = "EMPTY_SELECTION"


class PeriodConflict(SchedulingError):
    code = "PERIOD_CONFLICT"
    status_code = 409


class CapacityExceeded(SchedulingError):
    code = "CAPACITY_EXCEEDED"
    status_code = 409


class LoadExceeded(SchedulingError):
    code = "LOAD_EXCEEDED"
    status_code = 409


class UnresolvedConflicts(SchedulingError):
    code = "UNRESOLVED_CONFLICTS"
    status_code = 409


class NotInSchedule(SchedulingError):
    code = "NOT_IN_SCHEDULE"
    status_code = 400


class NotAssigned(NotInSchedule):
    code = "NOT_ASSIGNED"


class TransactionConflict(SchedulingError):
    """Lost race or serialization failure reported by the store. Safe to retry."""

    code = "TRANSACTION_CONFLICT"
    status_code = 409
    retryable = True
