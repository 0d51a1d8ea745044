from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, Sequence, TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import settings
from core.errors import SchedulingError, TransactionConflict


logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseUnavailableError(RuntimeError):
    """Raised when the database is temporarily unreachable (transient connectivity failure)."""


_RETRY_DELAYS_SECONDS: list[float] = [0.2, 0.5, 1.0]

# SQLSTATE codes PostgreSQL uses for serialization failures and deadlocks.
_SERIALIZATION_SQLSTATES = {"40001", "40P01"}


def _iter_exception_messages(exc: BaseException) -> Iterable[str]:
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        msg = str(cur)
        if msg:
            yield msg
        cur = getattr(cur, "__cause__", None) or getattr(cur, "__context__", None)


def is_transient_db_connectivity_error(exc: BaseException) -> bool:
    """Heuristically detect transient DB connectivity failures (DNS/timeouts/refused).

    We intentionally do NOT treat constraint/validation/SQL errors as transient.
    """

    joined = "\n".join(m.lower() for m in _iter_exception_messages(exc))

    # DNS resolution failures
    if "getaddrinfo failed" in joined:
        return True
    if "could not translate host name" in joined:
        return True
    if "name or service not known" in joined:
        return True

    # Connection refused / reset / closed
    if "connection refused" in joined:
        return True
    if "connection reset" in joined:
        return True
    if "server closed the connection unexpectedly" in joined:
        return True

    # Timeouts
    if "timed out" in joined:
        return True

    return False


def is_transaction_conflict_error(exc: BaseException) -> bool:
    """Detect a lost concurrent race reported by the store.

    Covers PostgreSQL serialization failures/deadlocks and SQLite writer lock
    contention. A row that fails a constraint after validation passed also
    means another transaction got there first.
    """

    if isinstance(exc, IntegrityError):
        return True

    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _SERIALIZATION_SQLSTATES:
        return True

    joined = "\n".join(m.lower() for m in _iter_exception_messages(exc))
    if "could not serialize access" in joined:
        return True
    if "deadlock detected" in joined:
        return True
    if "database is locked" in joined:
        return True
    if "lock timeout" in joined:
        return True

    return False


def get_engine(url: str | None = None) -> Engine:
    url = (url or settings.database_url).strip()

    # Normalize common Postgres URLs to SQLAlchemy's psycopg2 dialect.
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg2://" + url.removeprefix("postgresql://")
    elif url.startswith("postgres://"):
        url = "postgresql+psycopg2://" + url.removeprefix("postgres://")

    if url.startswith("sqlite"):
        connect_args: dict[str, object] = {"check_same_thread": False, "timeout": 5}
        if url in {"sqlite://", "sqlite:///:memory:"}:
            engine = create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        else:
            engine = create_engine(url, connect_args=connect_args)

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, _connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # pool_pre_ping helps with stale pooled connections.
    # connect_timeout keeps outages from hanging requests (used by retries and /health).
    # REPEATABLE READ turns a concurrent write to a row we already touched into
    # a serialization failure, which atomic() reports as TransactionConflict.
    return create_engine(
        url,
        pool_pre_ping=True,
        isolation_level="REPEATABLE READ",
        connect_args={"connect_timeout": 3},
    )


ENGINE = get_engine()
SessionLocal = sessionmaker(bind=ENGINE, autoflush=False, autocommit=False)


def get_db():
    last_exc: BaseException | None = None

    # Retry session acquisition by doing an explicit lightweight ping (SELECT 1).
    for attempt in range(len(_RETRY_DELAYS_SECONDS) + 1):
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        except OperationalError as exc:
            last_exc = exc
            db.close()
            if not is_transient_db_connectivity_error(exc) or attempt >= len(_RETRY_DELAYS_SECONDS):
                break
            time.sleep(_RETRY_DELAYS_SECONDS[attempt])
            continue

        # Exceptions raised by the endpoint must propagate normally (e.g. 409/422)
        # rather than being converted into DatabaseUnavailableError (503).
        try:
            yield db
        finally:
            db.close()
        return

    raise DatabaseUnavailableError("Database temporarily unavailable") from last_exc


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run one validate-then-mutate unit and commit it, or roll all of it back.

    Store-level race failures surface as the retryable TransactionConflict.
    """

    try:
        yield db
        db.commit()
    except SchedulingError:
        db.rollback()
        raise
    except (IntegrityError, OperationalError) as exc:
        db.rollback()
        if is_transaction_conflict_error(exc):
            logger.warning("Transaction lost a concurrent race; rolled back", exc_info=exc)
            raise TransactionConflict("Concurrent modification detected. Please retry.") from exc
        raise
    except BaseException:
        db.rollback()
        raise


def retry_on_transaction_conflict(fn: Callable[[], T], *, delays: Sequence[float] | None = None) -> T:
    """Call ``fn`` again with backoff while it fails with TransactionConflict."""

    delays = list(settings.transaction_retry_delays if delays is None else delays)
    for attempt in range(len(delays) + 1):
        try:
            return fn()
        except TransactionConflict:
            if attempt >= len(delays):
                raise
            logger.info("Retrying after transaction conflict (attempt %d of %d)", attempt + 1, len(delays))
            time.sleep(delays[attempt])
    raise AssertionError("unreachable")
