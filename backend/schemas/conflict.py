from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class ConflictOut(BaseModel):
    id: uuid.UUID
    request_id: uuid.UUID
    course_id: uuid.UUID
    type: str
    description: str
    resolved: bool
    created_at: datetime

    class Config:
        from_attributes = True


class DetectedConflictOut(BaseModel):
    conflict_type: str
    description: str
    course_id: uuid.UUID

    class Config:
        from_attributes = True
