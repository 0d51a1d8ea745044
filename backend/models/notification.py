from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, Text, Uuid
from sqlalchemy.sql import func

from models.base import Base


NOTIFICATION_TYPES = ("REQUEST_UPDATE", "REQUEST_APPROVED", "REQUEST_DENIED")
NOTIFICATION_TYPE = Enum(*NOTIFICATION_TYPES, name="notification_type")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # "student:<uuid>" or "user:<uuid>"
    recipient_ref = Column(Text, nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(NOTIFICATION_TYPE, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
