from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from core.config import BACKEND_DIR


_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Services log every committed schedule/request mutation at INFO.
AUDIT_LOGGER = "services"


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def resolve_level(environment: str, override: str | None = None) -> int:
    if override:
        level = logging.getLevelName(override.strip().upper())
        if isinstance(level, int):
            return level
        raise ValueError(f"Unknown log level: {override!r}")
    env = (environment or "development").lower().strip()
    return logging.INFO if env == "production" else logging.DEBUG


def setup_logging(*, environment: str, level: str | None = None, log_dir: Path | None = None) -> None:
    """Configure application logging.

    - Dev: console logs, DEBUG level.
    - Prod: console + rotating ``scheduler.log``, plus ``audit.log`` holding
      only the service-layer mutation records, INFO level.

    ``level`` overrides the environment default. Safe to call multiple times
    (won't double-add handlers).
    """

    root = logging.getLogger()
    if root.handlers:
        return

    env = (environment or "development").lower().strip()
    resolved = resolve_level(env, level)
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler()
    console.setLevel(resolved)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if env == "production":
        logs_dir = Path(log_dir or BACKEND_DIR / "logs")
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_handler(logs_dir / "scheduler.log", resolved, formatter))
        logging.getLogger(AUDIT_LOGGER).addHandler(
            _rotating_handler(logs_dir / "audit.log", logging.INFO, formatter)
        )

    logging.basicConfig(level=resolved, handlers=handlers)

    # SQL echo at DEBUG drowns out the engine's own decisions.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(resolved)
    logging.getLogger("uvicorn.access").setLevel(resolved)
