from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.database import atomic
from core.errors import NotificationNotFound
from models.notification import Notification
from models.student import Student
from models.user import User


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationIntent:
    recipient_ref: str
    message: str
    type: str


class NotificationSink(Protocol):
    def deliver(self, intent: NotificationIntent) -> None: ...


def student_ref(student_id: uuid.UUID) -> str:
    return f"student:{student_id}"


def user_ref(user_id: uuid.UUID) -> str:
    return f"user:{user_id}"


def reviewer_refs(db: Session) -> list[str]:
    """Recipients for new-request alerts: every active counselor."""

    q = select(User.id).where(User.role == "COUNSELOR").where(User.is_active.is_(True)).order_by(User.username)
    return [user_ref(uid) for uid in db.execute(q).scalars().all()]


class DatabaseNotificationSink:
    """Stores intents as notification rows, each in its own short session."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def deliver(self, intent: NotificationIntent) -> None:
        db = self._session_factory()
        try:
            db.add(Notification(recipient_ref=intent.recipient_ref, message=intent.message, type=intent.type))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def dispatch_intents(sink: NotificationSink | None, intents: Iterable[NotificationIntent]) -> int:
    """Hand intents to the sink after the engine's commit.

    Delivery is best-effort: a failing sink is logged and skipped, never
    propagated, since schedule state is already committed.
    """

    delivered = 0
    for intent in intents:
        if sink is None:
            logger.debug("No notification sink configured; dropping intent for %s", intent.recipient_ref)
            continue
        try:
            sink.deliver(intent)
        except Exception:
            logger.warning("Notification delivery to %s failed", intent.recipient_ref, exc_info=True)
            continue
        delivered += 1
    return delivered


def inbox_refs(db: Session, user_id: uuid.UUID) -> list[str]:
    """Every recipient ref a signed-in user reads: their own, plus their student record's."""

    refs = [user_ref(user_id)]
    student_id = db.execute(select(Student.id).where(Student.user_id == user_id)).scalars().first()
    if student_id is not None:
        refs.append(student_ref(student_id))
    return refs


def list_notifications(db: Session, *recipient_refs: str) -> list[Notification]:
    q = (
        select(Notification)
        .where(Notification.recipient_ref.in_(recipient_refs))
        .order_by(Notification.created_at.desc())
    )
    return db.execute(q).scalars().all()


def mark_read(db: Session, notification_id: uuid.UUID, *recipient_refs: str) -> Notification:
    row = db.get(Notification, notification_id)
    if row is None or row.recipient_ref not in recipient_refs:
        raise NotificationNotFound(
            f"Notification with ID {notification_id} not found", notification_id=notification_id
        )
    with atomic(db):
        row.read = True
    db.refresh(row)
    return row


def mark_all_read(db: Session, *recipient_refs: str) -> int:
    with atomic(db):
        result = db.execute(
            update(Notification)
            .where(Notification.recipient_ref.in_(recipient_refs))
            .where(Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
    return int(result.rowcount or 0)
