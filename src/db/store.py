"""Postgres-backed lesson store adapter.

The store works on a single connection acquired from the pool: it snapshots the owner's persons and
lessons for planning, then runs writes and the verification read-back on that same connection. The
pool commits when the connection is released. A failed statement rolls back the whole command, so
no earlier write of that command survives an `AdapterError`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

import psycopg
from psycopg import AsyncConnection

from src.db.dataset_rows import lesson_from_row, person_from_row
from src.db.query import execute, fetch_all, fetch_one
from src.roster.adapter import AdapterError
from src.roster.models import Lesson, LessonDraft, Person, ScheduledLesson
from src.roster.schedule import day_projection
from src.sql.builder import (
    SQLBuilderError,
    build_lesson_insert,
    build_lesson_update,
    build_lessons_select,
    build_persons_select,
)

logger = logging.getLogger(__name__)


async def _fetch_lessons(conn: AsyncConnection, owner_id: str) -> list[Lesson]:
    return [lesson_from_row(row) for row in await fetch_all(conn, build_lessons_select(owner_id))]


async def _rollback(conn: AsyncConnection, message: str) -> AdapterError:
    """Discard the command's pending writes and return the error to raise."""

    logger.warning("%s; rolling back", message)
    try:
        await conn.rollback()
    except psycopg.Error:
        logger.exception("rollback failed")
    return AdapterError(message)


class PostgresLessonStore:
    """`LessonStoreAdapter` over the `persons` and `lessons` tables of one roster owner."""

    def __init__(
            self,
            conn: AsyncConnection,
            owner_id: str,
            persons: list[Person],
            lessons: list[Lesson],
    ) -> None:
        self._conn = conn
        self._owner_id = owner_id
        self._persons = persons
        self._lessons = lessons

    @classmethod
    async def load(cls, conn: AsyncConnection, owner_id: str) -> PostgresLessonStore:
        """Snapshot the owner's roster.

        Raises:
            AdapterError: If the roster cannot be read.
        """

        try:
            persons = [person_from_row(row) for row in await fetch_all(conn, build_persons_select(owner_id))]
            lessons = await _fetch_lessons(conn, owner_id)
        except psycopg.Error as exc:
            raise await _rollback(conn, f"failed to load roster for owner {owner_id}") from exc
        return cls(conn, owner_id, persons, lessons)

    @property
    def persons(self) -> list[Person]:
        return list(self._persons)

    @property
    def lessons(self) -> list[Lesson]:
        return list(self._lessons)

    def scheduled_lessons_for_date(self, day: date) -> list[ScheduledLesson]:
        return day_projection(self._persons, self._lessons, day)

    async def update_lesson_by_id(self, lesson_id: str, fields: Mapping[str, Any]) -> bool:
        try:
            query = build_lesson_update(self._owner_id, lesson_id, fields)
            affected = await execute(self._conn, query)
        except (SQLBuilderError, psycopg.Error) as exc:
            raise await _rollback(self._conn, f"failed to update lesson {lesson_id}") from exc
        return affected > 0

    async def add_lesson(self, draft: LessonDraft) -> str:
        try:
            row = await fetch_one(self._conn, build_lesson_insert(self._owner_id, draft))
        except psycopg.Error as exc:
            raise await _rollback(self._conn, f"failed to add lesson for person {draft.person_id}") from exc
        if row is None:
            raise await _rollback(self._conn, f"insert returned no id for person {draft.person_id}")
        return str(row[0])

    async def fetch_lessons_for_verification(self) -> list[Lesson]:
        try:
            lessons = await _fetch_lessons(self._conn, self._owner_id)
        except psycopg.Error as exc:
            raise await _rollback(self._conn, "failed to read lessons back") from exc
        self._lessons = lessons
        logger.debug("read back owner=%s lessons=%d", self._owner_id, len(lessons))
        return list(lessons)
