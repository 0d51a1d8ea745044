from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


RuleTypeName = Literal["SCHEDULE_OVERLAP", "PREREQUISITE", "GRADE_REQUIREMENT", "CAPACITY", "OTHER"]


class CourseRuleCreate(BaseModel):
    course_id: uuid.UUID
    conflicting_course_id: uuid.UUID
    type: RuleTypeName
    description: str = Field(default="", max_length=500)
    is_active: bool = True


class CourseRuleUpdate(BaseModel):
    is_active: bool


class CourseRuleOut(BaseModel):
    id: uuid.UUID
    course_id: uuid.UUID
    conflicting_course_id: uuid.UUID
    type: str
    description: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RuleOut(BaseModel):
    id: uuid.UUID
    name: str
    type: str
    description: str
    is_active: bool

    class Config:
        from_attributes = True
