"""Roster-to-row conversion helpers.

Both the JSON loader and the Postgres store need to convert between roster models and row tuples
of the `persons` and `lessons` tables. Column order follows `src.sql.columns`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from psycopg.types.json import Jsonb

from src.roster.models import Lesson, Person, ScheduleChange, ScheduleSlot


def iter_person_rows(persons: Sequence[Person], owner_id: str) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `persons` table."""

    for person in persons:
        yield (
            person.id,
            owner_id,
            person.first_name,
            person.last_name,
            Jsonb(person.schedule.model_dump(mode="json")),
            Jsonb([slot.model_dump(mode="json") for slot in person.additional_schedules]),
            Jsonb(person.schedule_change.model_dump(mode="json")) if person.schedule_change else None,
            person.terminated_from,
        )


def iter_lesson_rows(lessons: Sequence[Lesson], owner_id: str) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples for inserting into the `lessons` table."""

    for lesson in lessons:
        yield (
            lesson.id,
            owner_id,
            lesson.person_id,
            lesson.date,
            lesson.time,
            lesson.duration_minutes,
            lesson.amount,
            lesson.completed,
            lesson.note,
        )


def person_from_row(row: Sequence[Any]) -> Person:
    """Build a `Person` from a row in `PERSON_SELECT_COLUMNS` order."""

    person_id, first_name, last_name, schedule, additional, change, terminated_from = row
    return Person(
        id=str(person_id),
        first_name=first_name,
        last_name=last_name or "",
        schedule=ScheduleSlot.model_validate(schedule),
        additional_schedules=[ScheduleSlot.model_validate(slot) for slot in additional or []],
        schedule_change=ScheduleChange.model_validate(change) if change else None,
        terminated_from=terminated_from,
    )


def lesson_from_row(row: Sequence[Any]) -> Lesson:
    """Build a `Lesson` from a row in `LESSON_SELECT_COLUMNS` order."""

    lesson_id, person_id, lesson_date, time_of_day, duration, amount, completed, note = row
    return Lesson(
        id=str(lesson_id),
        person_id=str(person_id),
        date=lesson_date,
        time=time_of_day,
        duration_minutes=int(duration),
        amount=int(amount),
        completed=bool(completed),
        note=note,
    )
