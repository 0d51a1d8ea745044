from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, PrimaryKeyConstraint, Uuid
from sqlalchemy.sql import func

from models.base import Base


class CourseCompletion(Base):
    __tablename__ = "course_completions"

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (PrimaryKeyConstraint("student_id", "course_id", name="pk_course_completions"),)
