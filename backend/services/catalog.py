from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.database import atomic
from core.errors import AlreadyExists, CourseNotFound, CourseRuleNotFound, InvalidInput
from models.course import Course
from models.course_rule import CourseRule
from models.rule import RULE_TYPES, Rule


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstraintCatalog:
    """Snapshot of the active rule graph, keyed by course id.

    ``edges[course_id]`` holds ``(conflicting_course_id, rule_type)`` pairs for
    active course rules only. Built once per detection; never mutated.
    """

    edges: dict[uuid.UUID, frozenset[tuple[uuid.UUID, str]]] = field(default_factory=dict)
    active_rule_ids: frozenset[uuid.UUID] = frozenset()

    @classmethod
    def from_rows(cls, course_rules: Iterable[CourseRule], rules: Iterable[Rule] = ()) -> "ConstraintCatalog":
        adjacency: dict[uuid.UUID, set[tuple[uuid.UUID, str]]] = defaultdict(set)
        active: set[uuid.UUID] = set()
        for r in course_rules:
            if not r.is_active:
                continue
            adjacency[r.course_id].add((r.conflicting_course_id, str(r.type)))
            active.add(r.id)
        for r in rules:
            if r.is_active:
                active.add(r.id)
        return cls(
            edges={k: frozenset(v) for k, v in adjacency.items()},
            active_rule_ids=frozenset(active),
        )

    @classmethod
    def load(cls, db: Session) -> "ConstraintCatalog":
        course_rules = db.execute(select(CourseRule).where(CourseRule.is_active.is_(True))).scalars().all()
        rules = db.execute(select(Rule).where(Rule.is_active.is_(True))).scalars().all()
        return cls.from_rows(course_rules, rules)

    def rules_for(self, course_id: uuid.UUID) -> frozenset[tuple[uuid.UUID, str]]:
        return self.edges.get(course_id, frozenset())

    def targets(self, course_id: uuid.UUID, rule_type: str) -> set[uuid.UUID]:
        return {other for other, t in self.rules_for(course_id) if t == rule_type}

    def is_active(self, rule_id: uuid.UUID) -> bool:
        return rule_id in self.active_rule_ids


def list_rules(db: Session) -> list[Rule]:
    return db.execute(select(Rule).order_by(Rule.name.asc())).scalars().all()


def list_course_rules(db: Session, *, course_id: uuid.UUID | None = None) -> list[CourseRule]:
    q = select(CourseRule).order_by(CourseRule.created_at.asc())
    if course_id is not None:
        q = q.where(CourseRule.course_id == course_id)
    return db.execute(q).scalars().all()


def add_course_rule(
    db: Session,
    *,
    course_id: uuid.UUID,
    conflicting_course_id: uuid.UUID,
    rule_type: str,
    description: str = "",
    is_active: bool = True,
) -> CourseRule:
    rule_type = str(rule_type).upper()
    if rule_type not in RULE_TYPES:
        raise InvalidInput(f"Unknown rule type {rule_type}", type=rule_type)
    if course_id == conflicting_course_id:
        raise InvalidInput("A course rule cannot reference the same course twice", course_id=course_id)

    if db.get(Course, course_id) is None:
        raise CourseNotFound(f"Course with ID {course_id} not found", course_id=course_id)
    if db.get(Course, conflicting_course_id) is None:
        raise CourseNotFound(
            f"Conflicting course with ID {conflicting_course_id} not found",
            course_id=conflicting_course_id,
        )

    existing = db.execute(
        select(CourseRule.id)
        .where(CourseRule.course_id == course_id)
        .where(CourseRule.conflicting_course_id == conflicting_course_id)
        .where(CourseRule.type == rule_type)
    ).first()
    if existing is not None:
        raise AlreadyExists("A similar rule already exists for these courses", course_rule_id=existing[0])

    row = CourseRule(
        course_id=course_id,
        conflicting_course_id=conflicting_course_id,
        type=rule_type,
        description=description,
        is_active=is_active,
    )
    with atomic(db):
        db.add(row)
    db.refresh(row)
    logger.info("Course rule %s added: %s -> %s (%s)", row.id, course_id, conflicting_course_id, rule_type)
    return row


def set_course_rule_active(db: Session, rule_id: uuid.UUID, is_active: bool) -> CourseRule:
    row = db.get(CourseRule, rule_id)
    if row is None:
        raise CourseRuleNotFound(f"Course rule with ID {rule_id} not found", course_rule_id=rule_id)
    with atomic(db):
        row.is_active = bool(is_active)
    db.refresh(row)
    return row


def remove_course_rule(db: Session, rule_id: uuid.UUID) -> None:
    row = db.get(CourseRule, rule_id)
    if row is None:
        raise CourseRuleNotFound(f"Course rule with ID {rule_id} not found", course_rule_id=rule_id)
    with atomic(db):
        db.delete(row)
    logger.info("Course rule %s removed", rule_id)
