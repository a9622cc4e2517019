"""Plan execution and read-back verification.

Execution is sequential: updates first, then creations, then one fresh read of all lessons. A plan
counts as confirmed only when every expectation recorded in `CommandPlan.verification` holds in
that read-back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from src.planner.plan import CommandPlan, LessonField
from src.roster.adapter import AdapterError, LessonStoreAdapter
from src.roster.models import Lesson

logger = logging.getLogger(__name__)


class EmptyPlanError(ValueError):
    """Raised when a plan has neither updates nor creations."""


class ExecutionState(StrEnum):
    planned = "planned"
    executing = "executing"
    verifying = "verifying"
    confirmed = "confirmed"
    verification_failed = "verification_failed"


@dataclass(frozen=True)
class Mismatch:
    """One expectation that the read-back did not satisfy."""

    lesson_id: str | None
    field: str
    expected: Any
    actual: Any


@dataclass(frozen=True)
class VerificationReport:
    state: ExecutionState
    mismatches: tuple[Mismatch, ...] = ()
    created_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def confirmed(self) -> bool:
        return self.state == ExecutionState.confirmed


def verify_plan(plan: CommandPlan, lessons: list[Lesson]) -> list[Mismatch]:
    """Compare a read-back lesson list against the plan's expectations."""

    by_id = {lesson.id: lesson for lesson in lessons}
    mismatches: list[Mismatch] = []

    for lesson_field, expected_by_id in plan.verification.fields.items():
        name = LessonField(lesson_field).value
        for lesson_id, expected in expected_by_id.items():
            row = by_id.get(lesson_id)
            if row is None:
                mismatches.append(Mismatch(lesson_id=lesson_id, field="id", expected=lesson_id, actual=None))
                continue
            actual = getattr(row, name)
            if actual != expected:
                mismatches.append(Mismatch(lesson_id=lesson_id, field=name, expected=expected, actual=actual))

    for creation in plan.verification.created:
        row = next(
            (
                lesson
                for lesson in lessons
                if lesson.person_id == creation.person_id and lesson.date == creation.date
            ),
            None,
        )
        if row is None:
            mismatches.append(
                Mismatch(lesson_id=None, field="created", expected=creation.person_id, actual=None)
            )
        elif row.completed != creation.completed:
            mismatches.append(
                Mismatch(lesson_id=row.id, field="completed", expected=creation.completed, actual=row.completed)
            )

    return mismatches


async def execute_plan(plan: CommandPlan, adapter: LessonStoreAdapter) -> VerificationReport:
    """Apply a plan through the adapter and verify the outcome.

    Raises:
        EmptyPlanError: If the plan has nothing to apply.
        AdapterError: If the store rejects a write or reports an update target as missing.
            Writes already applied are not rolled back.
    """

    if plan.is_empty:
        raise EmptyPlanError("plan has no updates or creations")

    logger.debug("state=%s updates=%d creates=%d", ExecutionState.executing, len(plan.updates), len(plan.creates))

    for step in plan.updates:
        applied = await adapter.update_lesson_by_id(step.lesson_id, step.changes.as_fields())
        if not applied:
            raise AdapterError(f"lesson {step.lesson_id} not found for update")

    created_ids: list[str] = []
    for step in plan.creates:
        created_ids.append(await adapter.add_lesson(step.lesson))

    logger.debug("state=%s intent=%s", ExecutionState.verifying, plan.intent)
    lessons = await adapter.fetch_lessons_for_verification()
    mismatches = verify_plan(plan, lessons)
    if mismatches:
        logger.warning(
            "verification failed intent=%s mismatches=%d first=%s",
            plan.intent,
            len(mismatches),
            mismatches[0],
        )
        return VerificationReport(
            state=ExecutionState.verification_failed,
            mismatches=tuple(mismatches),
            created_ids=tuple(created_ids),
        )

    return VerificationReport(state=ExecutionState.confirmed, created_ids=tuple(created_ids))
