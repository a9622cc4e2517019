"""Command plan models.

A plan is the complete, inspectable set of intended side effects of one command: updates of
existing lesson rows, creations of new rows, and the expectations the read-back must satisfy.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.intent.schema import ClockTime, CommandIntent
from src.roster.models import LessonDraft

ALLOWED_DURATIONS: frozenset[int] = frozenset({30, 45, 60, 90, 120})


class LessonField(StrEnum):
    """Lesson fields a plan may mutate."""

    completed = "completed"
    date = "date"
    time = "time"
    duration_minutes = "duration_minutes"
    amount = "amount"


class _PlanModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class LessonChanges(_PlanModel):
    """Field updates for one existing row; unset fields are left untouched."""

    completed: bool | None = None
    date: dt.date | None = None
    time: ClockTime | None = None
    duration_minutes: int | None = None
    amount: int | None = None

    def as_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class PlanUpdate(_PlanModel):
    lesson_id: str
    person_id: str
    person_name: str
    date: dt.date
    changes: LessonChanges


class PlanCreate(_PlanModel):
    person_id: str
    person_name: str
    date: dt.date
    lesson: LessonDraft


class ExpectedCreation(_PlanModel):
    person_id: str
    date: dt.date
    completed: bool


class Verification(_PlanModel):
    """Expected post-write state: per field, lesson id -> value; plus rows that must exist."""

    fields: dict[LessonField, dict[str, Any]] = Field(default_factory=dict)
    created: list[ExpectedCreation] = Field(default_factory=list)


class CommandPlan(_PlanModel):
    intent: CommandIntent
    target_date: dt.date | None
    updates: list[PlanUpdate] = Field(default_factory=list)
    creates: list[PlanCreate] = Field(default_factory=list)
    verification: Verification = Field(default_factory=Verification)

    @property
    def is_empty(self) -> bool:
        return not self.updates and not self.creates


def build_verification(updates: list[PlanUpdate], creates: list[PlanCreate]) -> Verification:
    """Derive the verification expectations from the queued steps."""

    expected: dict[LessonField, dict[str, Any]] = {}
    for update in updates:
        for name, value in update.changes.as_fields().items():
            expected.setdefault(LessonField(name), {})[update.lesson_id] = value

    created = [
        ExpectedCreation(person_id=step.person_id, date=step.date, completed=step.lesson.completed)
        for step in creates
    ]
    return Verification(fields=expected, created=created)


def make_plan(
        intent: CommandIntent,
        target_date: dt.date | None,
        updates: list[PlanUpdate],
        creates: list[PlanCreate],
) -> CommandPlan:
    return CommandPlan(
        intent=intent,
        target_date=target_date,
        updates=updates,
        creates=creates,
        verification=build_verification(updates, creates),
    )
