"""Tests for schedule creation, updates and enrollment bookkeeping."""

import uuid

import pytest
from sqlalchemy import func, select

from core.errors import (
    AlreadyAssigned,
    AlreadyExists,
    CapacityExceeded,
    CourseNotFound,
    EmptySelection,
    InvalidInput,
    LoadExceeded,
    NoSchedule,
    NotInSchedule,
    PeriodConflict,
    ScheduleNotFound,
    StudentNotFound,
)
from models import Course, ScheduleCourse
from services import schedule_store
from services.settings_provider import update_settings


def _enrollment(db, course_id) -> int:
    db.expire_all()
    return db.get(Course, course_id).current_enrollment


def _membership_count(db, course_id) -> int:
    return db.execute(select(func.count()).select_from(ScheduleCourse).where(ScheduleCourse.course_id == course_id)).scalar_one()


def _codes(view) -> list[str]:
    return [c.course_code for c in view.courses]


# ─── create_schedule ─────────────────────────────────────────────────────────

class TestCreateSchedule:
    def test_create_assigns_courses_and_takes_seats(self, school, alice_schedule):
        """Creating a schedule links courses ordered by period and bumps enrollment."""
        assert _codes(alice_schedule) == ["MATH101", "BIO101"]
        assert alice_schedule.schedule.student_id == school.alice_id
        assert _enrollment(school.db, school.course_ids["MATH101"]) == 1
        assert _enrollment(school.db, school.course_ids["BIO101"]) == 1

    def test_second_schedule_for_student_rejected(self, school, alice_schedule):
        with pytest.raises(AlreadyExists):
            schedule_store.create_schedule(
                school.db,
                student_id=school.alice_id,
                course_ids=[school.course_ids["ENG101"]],
                semester="Fall",
                year=2024,
            )

    def test_unknown_student(self, school):
        with pytest.raises(StudentNotFound):
            schedule_store.create_schedule(
                school.db, student_id=uuid.uuid4(), course_ids=[school.course_ids["ENG101"]], semester="Fall", year=2024
            )

    def test_empty_selection(self, school):
        with pytest.raises(EmptySelection):
            schedule_store.create_schedule(
                school.db, student_id=school.bob_id, course_ids=[], semester="Fall", year=2024
            )

    def test_duplicate_course_ids(self, school):
        cid = school.course_ids["ENG101"]
        with pytest.raises(InvalidInput):
            schedule_store.create_schedule(
                school.db, student_id=school.bob_id, course_ids=[cid, cid], semester="Fall", year=2024
            )

    def test_unknown_course(self, school):
        missing = uuid.uuid4()
        with pytest.raises(CourseNotFound) as exc:
            schedule_store.create_schedule(
                school.db,
                student_id=school.bob_id,
                course_ids=[school.course_ids["ENG101"], missing],
                semester="Fall",
                year=2024,
            )
        assert exc.value.details["course_ids"] == [str(missing)]

    def test_period_clash_rejected_without_side_effects(self, school):
        """MATH101 and MATH201 both meet in period 1."""
        ids = school.course_ids
        with pytest.raises(PeriodConflict) as exc:
            schedule_store.create_schedule(
                school.db,
                student_id=school.bob_id,
                course_ids=[ids["MATH101"], ids["MATH201"]],
                semester="Fall",
                year=2024,
            )
        assert exc.value.details["period"] == 1
        assert _enrollment(school.db, ids["MATH101"]) == 0
        assert _enrollment(school.db, ids["MATH201"]) == 24
        assert schedule_store.find_schedule_for_student(school.db, school.bob_id) is None

    def test_full_course_rejected(self, school):
        course = school.courses["PHYS201"]
        course.current_enrollment = course.capacity
        school.db.commit()
        with pytest.raises(CapacityExceeded):
            schedule_store.create_schedule(
                school.db,
                student_id=school.bob_id,
                course_ids=[school.course_ids["PHYS201"]],
                semester="Fall",
                year=2024,
            )

    def test_load_limit_from_settings(self, school):
        update_settings(school.db, max_course_load=2)
        ids = school.course_ids
        with pytest.raises(LoadExceeded) as exc:
            schedule_store.create_schedule(
                school.db,
                student_id=school.bob_id,
                course_ids=[ids["MATH101"], ids["BIO101"], ids["ENG101"]],
                semester="Fall",
                year=2024,
            )
        assert exc.value.details["max_course_load"] == 2


# ─── update_schedule ─────────────────────────────────────────────────────────

class TestUpdateSchedule:
    def test_add_and_remove(self, school, alice_schedule):
        ids = school.course_ids
        view = schedule_store.update_schedule(
            school.db,
            alice_schedule.schedule.id,
            add_course_ids=[ids["ENG101"]],
            remove_course_ids=[ids["BIO101"]],
        )
        assert _codes(view) == ["MATH101", "ENG101"]
        assert _enrollment(school.db, ids["BIO101"]) == 0
        assert _enrollment(school.db, ids["ENG101"]) == 1

    def test_swap_within_same_period(self, school, alice_schedule):
        """Removing MATH101 frees period 1 for MATH201 in the same update."""
        ids = school.course_ids
        view = schedule_store.update_schedule(
            school.db,
            alice_schedule.schedule.id,
            add_course_ids=[ids["MATH201"]],
            remove_course_ids=[ids["MATH101"]],
        )
        assert _codes(view) == ["MATH201", "BIO101"]
        assert _enrollment(school.db, ids["MATH201"]) == 25
        assert _enrollment(school.db, ids["MATH101"]) == 0

    def test_semester_and_year_only(self, school, alice_schedule):
        view = schedule_store.update_schedule(school.db, alice_schedule.schedule.id, semester="Spring", year=2025)
        assert view.schedule.semester == "Spring"
        assert view.schedule.year == 2025
        assert _codes(view) == ["MATH101", "BIO101"]

    def test_ninth_course_exceeds_load(self, school):
        """With the default load of 8, adding a ninth course fails and nothing is linked."""
        ids = school.course_ids
        eight = ["MATH101", "BIO101", "ENG101", "HIST101", "CHEM201", "ART101", "PE101", "MUS101"]
        view = schedule_store.create_schedule(
            school.db,
            student_id=school.bob_id,
            course_ids=[ids[c] for c in eight],
            semester="Fall",
            year=2024,
        )
        with pytest.raises(LoadExceeded):
            schedule_store.update_schedule(school.db, view.schedule.id, add_course_ids=[ids["SPAN101"]])
        assert _membership_count(school.db, ids["SPAN101"]) == 0
        assert _enrollment(school.db, ids["SPAN101"]) == 0
        assert len(schedule_store.get_schedule(school.db, view.schedule.id).courses) == 8

    def test_period_clash_on_add(self, school, alice_schedule):
        with pytest.raises(PeriodConflict):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, add_course_ids=[school.course_ids["PHYS201"]]
            )
        assert _enrollment(school.db, school.course_ids["PHYS201"]) == 0

    def test_remove_unassigned(self, school, alice_schedule):
        with pytest.raises(NotInSchedule):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, remove_course_ids=[school.course_ids["ENG101"]]
            )

    def test_add_already_assigned(self, school, alice_schedule):
        with pytest.raises(AlreadyAssigned):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, add_course_ids=[school.course_ids["MATH101"]]
            )

    def test_add_and_remove_same_course(self, school, alice_schedule):
        cid = school.course_ids["MATH101"]
        with pytest.raises(InvalidInput):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, add_course_ids=[cid], remove_course_ids=[cid]
            )

    def test_removing_everything_is_empty_selection(self, school, alice_schedule):
        ids = school.course_ids
        with pytest.raises(EmptySelection):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, remove_course_ids=[ids["MATH101"], ids["BIO101"]]
            )

    def test_unknown_schedule(self, school):
        with pytest.raises(ScheduleNotFound):
            schedule_store.update_schedule(school.db, uuid.uuid4(), semester="Spring")

    def test_duplicate_ids_rejected(self, school, alice_schedule):
        ids = school.course_ids
        with pytest.raises(InvalidInput):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, add_course_ids=[ids["ENG101"], ids["ENG101"]]
            )
        with pytest.raises(InvalidInput):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, remove_course_ids=[ids["BIO101"], ids["BIO101"]]
            )
        assert _enrollment(school.db, ids["ENG101"]) == 0
        assert _enrollment(school.db, ids["BIO101"]) == 1

    def test_schedule_deleted_by_another_session(self, school, alice_schedule, session_factory):
        """A schedule object loaded earlier does not let an update outlive a concurrent delete."""
        other = session_factory()
        try:
            schedule_store.delete_schedule(other, alice_schedule.schedule.id)
        finally:
            other.close()

        with pytest.raises(ScheduleNotFound):
            schedule_store.update_schedule(
                school.db, alice_schedule.schedule.id, add_course_ids=[school.course_ids["ENG101"]]
            )
        assert _enrollment(school.db, school.course_ids["ENG101"]) == 0
        assert _membership_count(school.db, school.course_ids["ENG101"]) == 0


# ─── Reads and deletion ──────────────────────────────────────────────────────

class TestScheduleReads:
    def test_get_for_student(self, school, alice_schedule):
        view = schedule_store.get_schedule_for_student(school.db, school.alice_id)
        assert view.course_ids == {school.course_ids["MATH101"], school.course_ids["BIO101"]}

    def test_student_without_schedule(self, school):
        with pytest.raises(NoSchedule):
            schedule_store.get_schedule_for_student(school.db, school.bob_id)

    def test_list_schedules(self, school, alice_schedule):
        schedule_store.create_schedule(
            school.db, student_id=school.bob_id, course_ids=[school.course_ids["ENG101"]], semester="Fall", year=2024
        )
        views = {v.schedule.student_id: _codes(v) for v in schedule_store.list_schedules(school.db)}
        assert views == {school.alice_id: ["MATH101", "BIO101"], school.bob_id: ["ENG101"]}

    def test_delete_releases_seats(self, school, alice_schedule):
        schedule_store.delete_schedule(school.db, alice_schedule.schedule.id)
        assert _enrollment(school.db, school.course_ids["MATH101"]) == 0
        assert _enrollment(school.db, school.course_ids["BIO101"]) == 0
        with pytest.raises(ScheduleNotFound):
            schedule_store.get_schedule(school.db, alice_schedule.schedule.id)


class TestEnrollmentInvariant:
    def test_enrollment_matches_membership(self, school, alice_schedule):
        """After a series of changes every course's counter equals its membership count."""
        ids = school.course_ids
        bob = schedule_store.create_schedule(
            school.db,
            student_id=school.bob_id,
            course_ids=[ids["MATH101"], ids["ENG101"]],
            semester="Fall",
            year=2024,
        )
        schedule_store.update_schedule(
            school.db, alice_schedule.schedule.id, add_course_ids=[ids["ENG101"]], remove_course_ids=[ids["MATH101"]]
        )
        schedule_store.update_schedule(school.db, bob.schedule.id, add_course_ids=[ids["HIST101"]])

        seeded = {"MATH201": 24}
        for code, cid in ids.items():
            assert _enrollment(school.db, cid) == seeded.get(code, 0) + _membership_count(school.db, cid), code
