from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.sql import func

from models.base import Base


REQUEST_STATUSES = ("PENDING", "APPROVED", "DENIED")
TERMINAL_STATUSES = frozenset({"APPROVED", "DENIED"})
REQUEST_STATUS = Enum(*REQUEST_STATUSES, name="request_status")


class ChangeRequest(Base):
    __tablename__ = "schedule_change_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    current_course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id"), nullable=False)
    new_course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id"), nullable=False)
    status = Column(REQUEST_STATUS, nullable=False, default="PENDING", index=True)
    reviewer_id = Column(Uuid(as_uuid=True), nullable=True)
    reason = Column(String(500), nullable=False)
    comments = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
