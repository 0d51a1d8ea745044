from __future__ import annotations

from pydantic import BaseModel, Field


class SettingsOut(BaseModel):
    school_name: str
    academic_year: str
    semester: str
    max_course_load: int
    allow_conflicts: bool

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    school_name: str | None = Field(default=None, min_length=1)
    academic_year: str | None = Field(default=None, min_length=1)
    semester: str | None = Field(default=None, min_length=1)
    max_course_load: int | None = Field(default=None, ge=1, le=12)
    allow_conflicts: bool | None = None
