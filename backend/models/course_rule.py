from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from models.base import Base
from models.rule import RULE_TYPE


class CourseRule(Base):
    """Directed edge ``course_id -> conflicting_course_id``.

    PREREQUISITE reads as "course requires conflicting course".
    """

    __tablename__ = "course_rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    conflicting_course_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(RULE_TYPE, nullable=False)
    description = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("course_id <> conflicting_course_id", name="ck_course_rules_not_self"),
        UniqueConstraint("course_id", "conflicting_course_id", "type", name="ux_course_rules_edge"),
    )
