from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import settings as app_settings
from core.database import atomic
from core.errors import InvalidInput
from models.school_settings import SchoolSettings


logger = logging.getLogger(__name__)

MAX_COURSE_LOAD_CEILING = 12


@dataclass(frozen=True)
class EffectiveSettings:
    max_course_load: int
    allow_conflicts: bool


def _load_row(db: Session) -> SchoolSettings | None:
    return db.execute(select(SchoolSettings).order_by(SchoolSettings.updated_at.asc()).limit(1)).scalars().first()


def get_settings(db: Session) -> EffectiveSettings:
    """Read-only view used by the schedule store and conflict detector."""

    row = _load_row(db)
    if row is None:
        return EffectiveSettings(
            max_course_load=int(app_settings.default_max_course_load),
            allow_conflicts=bool(app_settings.default_allow_conflicts),
        )
    return EffectiveSettings(max_course_load=int(row.max_course_load), allow_conflicts=bool(row.allow_conflicts))


def get_school_settings(db: Session) -> SchoolSettings:
    """Full settings row for the admin surface; unsaved defaults when none exists."""

    row = _load_row(db)
    if row is not None:
        return row
    return SchoolSettings(
        school_name="East High School",
        academic_year="2024-2025",
        semester="Fall",
        max_course_load=int(app_settings.default_max_course_load),
        allow_conflicts=bool(app_settings.default_allow_conflicts),
    )


def update_settings(db: Session, **updates: Any) -> SchoolSettings:
    updates = {k: v for k, v in updates.items() if v is not None}
    max_load = updates.get("max_course_load")
    if max_load is not None and not (1 <= int(max_load) <= MAX_COURSE_LOAD_CEILING):
        raise InvalidInput(
            f"max_course_load must be between 1 and {MAX_COURSE_LOAD_CEILING}",
            max_course_load=max_load,
        )

    with atomic(db):
        row = _load_row(db)
        if row is None:
            row = get_school_settings(db)
            db.add(row)
        for k, v in updates.items():
            setattr(row, k, v)

    db.refresh(row)
    logger.info("School settings updated: %s", sorted(updates))
    return row
