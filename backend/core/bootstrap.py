from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from core.database import ENGINE
from models import Base


logger = logging.getLogger(__name__)


def bootstrap_schema(engine: Engine | None = None) -> None:
    """Create missing tables. Safe to run on every startup.

    Existing tables are left untouched; column changes go through migrations.
    """

    engine = engine or ENGINE
    Base.metadata.create_all(engine)
    logger.info("Schema bootstrap complete (%d tables)", len(Base.metadata.tables))
