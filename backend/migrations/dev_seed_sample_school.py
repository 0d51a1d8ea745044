from __future__ import annotations

"""DEV ONLY: seed a small school (courses, students, counselors, settings).

Existing rows with the same course code / username are reused, so reruns
are harmless. Prints a reviewer token for trying the API locally.
"""

import argparse
import sys
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.bootstrap import bootstrap_schema
from core.database import ENGINE
from core.security import create_access_token
from models import Course, CourseRule, SchoolSettings, Student, User


# code, name, teacher, room, period, capacity
COURSES = [
    ("MATH101", "Algebra I", "Ms. Rivera", "A101", 1, 30),
    ("MATH201", "Geometry", "Mr. Chen", "A102", 1, 25),
    ("ENG101", "English 9", "Mrs. Patel", "B201", 2, 28),
    ("BIO101", "Biology", "Dr. Okafor", "C301", 3, 24),
    ("CHEM201", "Chemistry", "Dr. Okafor", "C302", 4, 24),
    ("HIST101", "World History", "Mr. Alvarez", "B105", 5, 30),
    ("ART101", "Studio Art", "Ms. Kim", "D010", 6, 20),
    ("PE101", "Physical Education", "Coach Brown", "GYM", 7, 40),
]


def _get_or_create_course(db: Session, row: tuple) -> Course:
    code, name, teacher, room, period, capacity = row
    course = db.execute(select(Course).where(Course.course_code == code)).scalars().first()
    if course is None:
        course = Course(
            course_code=code,
            name=name,
            teacher=teacher,
            room=room,
            period=period,
            capacity=capacity,
            current_enrollment=0,
        )
        db.add(course)
        db.flush()
    return course


def _get_or_create_user(db: Session, username: str, role: str) -> User:
    user = db.execute(select(User).where(User.username == username)).scalars().first()
    if user is None:
        user = User(username=username, role=role, is_active=True)
        db.add(user)
        db.flush()
    return user


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--yes", action="store_true", help="Actually apply changes")
    parser.add_argument("--students", type=int, default=5, help="Number of sample students")
    args = parser.parse_args()

    if not args.yes:
        print("Dry run. Re-run with --yes to apply.")
        print(f"Would seed {len(COURSES)} courses, {args.students} students, 1 admin and 1 counselor.")
        return

    bootstrap_schema(ENGINE)

    with Session(ENGINE) as db:
        courses = {row[0]: _get_or_create_course(db, row) for row in COURSES}

        prereq = db.execute(
            select(CourseRule.id)
            .where(CourseRule.course_id == courses["CHEM201"].id)
            .where(CourseRule.conflicting_course_id == courses["BIO101"].id)
        ).first()
        if prereq is None:
            db.add(
                CourseRule(
                    course_id=courses["CHEM201"].id,
                    conflicting_course_id=courses["BIO101"].id,
                    type="PREREQUISITE",
                    description="Chemistry requires Biology",
                )
            )

        admin = _get_or_create_user(db, "admin", "ADMIN")
        _get_or_create_user(db, "counselor", "COUNSELOR")

        for i in range(1, args.students + 1):
            user = _get_or_create_user(db, f"student{i}", "STUDENT")
            exists = db.execute(select(Student.id).where(Student.user_id == user.id)).first()
            if exists is None:
                db.add(Student(user_id=user.id, name=f"Student {i}", grade_level=9 + (i % 4)))

        if db.execute(select(SchoolSettings.id)).first() is None:
            db.add(SchoolSettings())

        db.commit()
        admin_id = str(admin.id)

    print("Seed complete.")
    print("Admin token:", create_access_token(user_id=admin_id, role="ADMIN", expires_minutes=24 * 60))


if __name__ == "__main__":
    main()
