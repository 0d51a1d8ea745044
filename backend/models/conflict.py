from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base
from models.rule import RULE_TYPE


class Conflict(Base):
    __tablename__ = "conflicts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("schedule_change_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id"), nullable=False)
    type = Column(RULE_TYPE, nullable=False)
    description = Column(Text, nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
