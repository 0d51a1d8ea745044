from __future__ import annotations

import uuid

from pydantic import BaseModel


class CourseOut(BaseModel):
    id: uuid.UUID
    course_code: str
    name: str
    teacher: str
    room: str
    period: int
    capacity: int
    current_enrollment: int

    class Config:
        from_attributes = True
