from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


class SchoolSettings(Base):
    __tablename__ = "school_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_name = Column(Text, nullable=False, default="East High School")
    academic_year = Column(Text, nullable=False, default="2024-2025")
    semester = Column(Text, nullable=False, default="Fall")
    max_course_load = Column(Integer, nullable=False, default=8)
    allow_conflicts = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("max_course_load >= 1 AND max_course_load <= 12", name="ck_school_settings_max_course_load"),
    )
