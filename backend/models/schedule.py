from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, PrimaryKeyConstraint, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from models.base import Base


class Schedule(Base):
    __tablename__ = "schedules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    semester = Column(Text, nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class ScheduleCourse(Base):
    """Membership row. ``period`` is copied from the course so the database
    rejects two courses in the same period of one schedule."""

    __tablename__ = "schedule_courses"

    schedule_id = Column(Uuid(as_uuid=True), ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id"), nullable=False, index=True)
    period = Column(Integer, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("schedule_id", "course_id", name="pk_schedule_courses"),
        UniqueConstraint("schedule_id", "period", name="ux_schedule_courses_period"),
    )
