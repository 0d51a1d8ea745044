from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from schemas.conflict import ConflictOut, DetectedConflictOut


class ChangeRequestCreate(BaseModel):
    student_id: uuid.UUID
    current_course_id: uuid.UUID
    new_course_id: uuid.UUID
    reason: str = Field(min_length=1, max_length=500)


class ChangeRequestDecision(BaseModel):
    # Omitting status is a reviewer/comment update.
    status: Literal["APPROVED", "DENIED"] | None = None
    reviewer_id: uuid.UUID | None = None
    comments: str | None = Field(default=None, max_length=500)


class ChangeRequestOut(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    current_course_id: uuid.UUID
    new_course_id: uuid.UUID
    status: str
    reviewer_id: uuid.UUID | None = None
    reason: str
    comments: str | None = None
    created_at: datetime
    updated_at: datetime
    conflicts: list[ConflictOut] = Field(default_factory=list)


class SubmissionOut(BaseModel):
    request: ChangeRequestOut
    detected_conflicts: list[DetectedConflictOut]
