from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


RULE_TYPES = (
    "SCHEDULE_OVERLAP",
    "PREREQUISITE",
    "GRADE_REQUIREMENT",
    "CAPACITY",
    "OTHER",
)
RULE_TYPE = Enum(*RULE_TYPES, name="rule_type")


class Rule(Base):
    __tablename__ = "rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False, unique=True)
    type = Column(RULE_TYPE, nullable=False)
    description = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
