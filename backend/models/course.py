from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


MIN_PERIOD = 1
MAX_PERIOD = 8


class Course(Base):
    __tablename__ = "courses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    course_code = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    teacher = Column(Text, nullable=False, default="")
    room = Column(Text, nullable=False, default="")
    period = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False)
    # Owned by the schedule store; only ever changed inside its transactions.
    current_enrollment = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(f"period >= {MIN_PERIOD} AND period <= {MAX_PERIOD}", name="ck_courses_period"),
        CheckConstraint("capacity > 0", name="ck_courses_capacity"),
        CheckConstraint("current_enrollment >= 0", name="ck_courses_enrollment_non_negative"),
        CheckConstraint("current_enrollment <= capacity", name="ck_courses_enrollment_capacity"),
    )
