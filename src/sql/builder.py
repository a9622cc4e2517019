"""Deterministic SQL builder for the lesson store.

The builder converts plan steps into parameterized SQL. Identifiers (columns, tables) are strictly
allowlisted; only values become bound parameters. Every statement is scoped to one roster owner.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.planner.plan import LessonField
from src.roster.models import LessonDraft
from src.sql.columns import LESSON_COLUMNS, LESSON_SELECT_COLUMNS, PERSON_SELECT_COLUMNS


class SQLBuilderError(ValueError):
    """Raised when a lesson change cannot be converted into deterministic SQL."""


@dataclass(frozen=True)
class BuiltQuery:
    """A parameterized SQL query ready for execution."""

    sql: str
    params: tuple[Any, ...]


def _column_list(columns: tuple[str, ...], alias: str) -> str:
    return ", ".join(f"{alias}.{column}" for column in columns)


def build_persons_select(owner_id: str) -> BuiltQuery:
    """Select every person of one roster owner, in insertion order."""

    sql = (
        f"SELECT {_column_list(PERSON_SELECT_COLUMNS, 'p')} "
        "FROM persons p WHERE p.owner_id = %s ORDER BY p.created_at, p.id"
    )
    return BuiltQuery(sql=sql, params=(owner_id,))


def build_lessons_select(owner_id: str) -> BuiltQuery:
    """Select every lesson of one roster owner."""

    sql = (
        f"SELECT {_column_list(LESSON_SELECT_COLUMNS, 'l')} "
        "FROM lessons l WHERE l.owner_id = %s ORDER BY l.lesson_date, l.created_at, l.id"
    )
    return BuiltQuery(sql=sql, params=(owner_id,))


def build_lesson_update(owner_id: str, lesson_id: str, fields: Mapping[str, Any]) -> BuiltQuery:
    """Build an UPDATE for one lesson row from a `{field: value}` mapping."""

    if not fields:
        raise SQLBuilderError("lesson update requires at least one field")

    assignments: list[str] = []
    params: list[Any] = []
    for name, value in fields.items():
        try:
            column = LESSON_COLUMNS[LessonField(name)]
        except ValueError as exc:
            raise SQLBuilderError(f"Unsupported lesson field: {name}") from exc
        assignments.append(f"{column} = %s")
        params.append(value)

    sql = (
        f"UPDATE lessons SET {', '.join(assignments)}, updated_at = NOW() "
        "WHERE id = %s AND owner_id = %s"
    )
    return BuiltQuery(sql=sql, params=(*params, lesson_id, owner_id))


def build_lesson_insert(owner_id: str, draft: LessonDraft) -> BuiltQuery:
    """Build an INSERT for a new lesson row returning its generated id."""

    sql = (
        "INSERT INTO lessons (owner_id, person_id, lesson_date, time_of_day, duration_minutes, "
        "amount_minor, completed, note) "
        "VALUES (%s, %s, %s, %s, %s, %s, %s, %s) RETURNING id"
    )
    params = (
        owner_id,
        draft.person_id,
        draft.date,
        draft.time,
        draft.duration_minutes,
        draft.amount,
        draft.completed,
        draft.note,
    )
    return BuiltQuery(sql=sql, params=params)
