"""Lesson store adapter contract and the in-memory implementation.

The planner reads snapshot accessors synchronously; the executor awaits the write and read-back
methods one at a time.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from typing import Any, Protocol

from pydantic import ValidationError

from src.roster.models import Lesson, LessonDraft, Person, ScheduledLesson
from src.roster.schedule import day_projection


class AdapterError(RuntimeError):
    """Raised when the lesson store rejects or fails a read/write."""


class LessonStoreAdapter(Protocol):
    """Read/write surface the command pipeline depends on."""

    @property
    def persons(self) -> list[Person]: ...

    @property
    def lessons(self) -> list[Lesson]: ...

    def scheduled_lessons_for_date(self, day: date) -> list[ScheduledLesson]: ...

    async def update_lesson_by_id(self, lesson_id: str, fields: Mapping[str, Any]) -> bool: ...

    async def add_lesson(self, draft: LessonDraft) -> str: ...

    async def fetch_lessons_for_verification(self) -> list[Lesson]: ...


class InMemoryAdapter:
    """Adapter over plain Python lists (CLI, tests)."""

    def __init__(
            self,
            persons: Iterable[Person],
            lessons: Iterable[Lesson] = (),
            *,
            id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._persons = list(persons)
        self._lessons = list(lessons)
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    @property
    def persons(self) -> list[Person]:
        return list(self._persons)

    @property
    def lessons(self) -> list[Lesson]:
        return list(self._lessons)

    def scheduled_lessons_for_date(self, day: date) -> list[ScheduledLesson]:
        return day_projection(self._persons, self._lessons, day)

    async def update_lesson_by_id(self, lesson_id: str, fields: Mapping[str, Any]) -> bool:
        for idx, lesson in enumerate(self._lessons):
            if lesson.id != lesson_id:
                continue
            try:
                self._lessons[idx] = Lesson.model_validate({**lesson.model_dump(), **dict(fields)})
            except ValidationError as exc:
                raise AdapterError(f"invalid update for lesson {lesson_id}") from exc
            return True
        return False

    async def add_lesson(self, draft: LessonDraft) -> str:
        lesson_id = self._id_factory()
        self._lessons.append(Lesson(id=lesson_id, **draft.model_dump()))
        return lesson_id

    async def fetch_lessons_for_verification(self) -> list[Lesson]:
        return list(self._lessons)
