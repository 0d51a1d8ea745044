from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String, Uuid
from sqlalchemy.sql import func

from models.base import Base


USER_ROLES = ("STUDENT", "COUNSELOR", "ADMIN")
USER_ROLE = Enum(*USER_ROLES, name="user_role")


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False, unique=True)
    role = Column(USER_ROLE, nullable=False, default="STUDENT")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
