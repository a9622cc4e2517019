"""Allowlisted SQL identifiers.

All column names referenced in generated SQL must come from these mappings; no user-provided
identifier should ever be interpolated into SQL.
"""

from __future__ import annotations

from src.planner.plan import LessonField

LESSON_COLUMNS: dict[LessonField, str] = {
    LessonField.completed: "completed",
    LessonField.date: "lesson_date",
    LessonField.time: "time_of_day",
    LessonField.duration_minutes: "duration_minutes",
    LessonField.amount: "amount_minor",
}

# Column order shared by lesson SELECTs and `lesson_from_row`.
LESSON_SELECT_COLUMNS: tuple[str, ...] = (
    "id",
    "person_id",
    "lesson_date",
    "time_of_day",
    "duration_minutes",
    "amount_minor",
    "completed",
    "note",
)

# Column order shared by person SELECTs/INSERTs and `person_from_row`.
PERSON_SELECT_COLUMNS: tuple[str, ...] = (
    "id",
    "first_name",
    "last_name",
    "schedule",
    "additional_schedules",
    "schedule_change",
    "terminated_from",
)
