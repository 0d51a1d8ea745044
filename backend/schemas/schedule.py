from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from schemas.course import CourseOut


class ScheduleCreate(BaseModel):
    student_id: uuid.UUID
    semester: str = Field(min_length=1)
    year: int = Field(ge=2000)
    course_ids: list[uuid.UUID]


class ScheduleUpdate(BaseModel):
    semester: str | None = Field(default=None, min_length=1)
    year: int | None = Field(default=None, ge=2000)
    add_course_ids: list[uuid.UUID] = Field(default_factory=list)
    remove_course_ids: list[uuid.UUID] = Field(default_factory=list)


class ScheduleOut(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    semester: str
    year: int
    courses: list[CourseOut]
    created_at: datetime
    updated_at: datetime
