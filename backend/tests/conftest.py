"""Shared fixtures: a file-backed SQLite database per test and a small school."""

import os

# Settings are read at import time; the module-level engine must not touch a real database.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import sessionmaker

from core.database import get_engine
from models import Base, Course, Student, User
from services.notifications import NotificationIntent
from services.schedule_store import create_schedule


# ─── Notification capture ────────────────────────────────────────────────────

@dataclass
class RecordingSink:
    delivered: list[NotificationIntent] = field(default_factory=list)

    def deliver(self, intent: NotificationIntent) -> None:
        self.delivered.append(intent)

    def for_recipient(self, ref: str) -> list[NotificationIntent]:
        return [i for i in self.delivered if i.recipient_ref == ref]


class FailingSink:
    def __init__(self) -> None:
        self.attempts = 0

    def deliver(self, intent: NotificationIntent) -> None:
        self.attempts += 1
        raise RuntimeError("mail server down")


# ─── Database ────────────────────────────────────────────────────────────────

@pytest.fixture
def engine(tmp_path):
    eng = get_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sink():
    return RecordingSink()


# ─── Sample school ───────────────────────────────────────────────────────────

# code, name, period, capacity, enrolled
SAMPLE_COURSES = [
    ("MATH101", "Algebra I", 1, 30, 0),
    ("BIO101", "Biology", 2, 30, 0),
    ("ENG101", "English 9", 3, 30, 0),
    ("HIST101", "World History", 4, 30, 0),
    ("CHEM201", "Chemistry", 5, 30, 0),
    ("ART101", "Studio Art", 6, 30, 0),
    ("PE101", "Physical Education", 7, 30, 0),
    ("MUS101", "Music", 8, 30, 0),
    ("SPAN101", "Spanish I", 8, 30, 0),
    ("MATH201", "Geometry", 1, 25, 24),
    ("PHYS201", "Physics", 2, 20, 0),
]


def add_course(db, code, name, period, capacity=30, enrolled=0):
    course = Course(
        course_code=code,
        name=name,
        teacher="Staff",
        room="R" + code[-3:],
        period=period,
        capacity=capacity,
        current_enrollment=enrolled,
    )
    db.add(course)
    return course


@pytest.fixture
def school(db):
    """Courses, one student, one counselor and one admin, committed."""

    courses = {code: add_course(db, code, name, p, cap, enr) for code, name, p, cap, enr in SAMPLE_COURSES}
    counselor = User(username="counselor", role="COUNSELOR", is_active=True)
    retired = User(username="retired", role="COUNSELOR", is_active=False)
    admin = User(username="admin", role="ADMIN", is_active=True)
    student_user = User(username="alice", role="STUDENT", is_active=True)
    db.add_all([counselor, retired, admin, student_user])
    db.flush()
    alice = Student(user_id=student_user.id, name="Alice", grade_level=10)
    bob = Student(name="Bob", grade_level=11)
    db.add_all([alice, bob])
    db.commit()

    return SimpleNamespace(
        db=db,
        courses=courses,
        course_ids={code: c.id for code, c in courses.items()},
        counselor_id=counselor.id,
        admin_id=admin.id,
        alice_id=alice.id,
        alice_user_id=student_user.id,
        bob_id=bob.id,
    )


@pytest.fixture
def alice_schedule(school):
    """Alice takes MATH101 (period 1) and BIO101 (period 2)."""

    ids = school.course_ids
    return create_schedule(
        school.db,
        student_id=school.alice_id,
        course_ids=[ids["MATH101"], ids["BIO101"]],
        semester="Fall",
        year=2024,
    )


@pytest.fixture
def failing_sink():
    return FailingSink()
