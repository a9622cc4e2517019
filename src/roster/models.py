"""Roster and lesson models.

A `Person` carries a recurring weekly schedule; a `Lesson` is a dated record that only exists once
something was recorded for that person on that date. Amounts are integer minor currency units.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from src.intent.schema import ClockTime


class _RosterModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)


class ScheduleSlot(_RosterModel):
    """One weekly slot. `day_of_week` uses Sunday=0; `rate` is the per-lesson amount."""

    day_of_week: int = Field(ge=0, le=6)
    time: ClockTime
    duration_minutes: int = Field(gt=0)
    rate: int = Field(ge=0)


class ScheduleChange(_RosterModel):
    """A future-dated replacement of the whole slot set."""

    effective_from: dt.date
    schedule: ScheduleSlot
    additional_schedules: list[ScheduleSlot] = Field(default_factory=list)


class Person(_RosterModel):
    id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = ""
    schedule: ScheduleSlot
    additional_schedules: list[ScheduleSlot] = Field(default_factory=list)
    schedule_change: ScheduleChange | None = None
    # Last lesson date; the person is inactive on any later date.
    terminated_from: dt.date | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class LessonDraft(_RosterModel):
    """A full lesson row without an identifier (used for creation)."""

    person_id: str = Field(min_length=1)
    date: dt.date
    time: ClockTime
    duration_minutes: int = Field(gt=0)
    amount: int = Field(ge=0)
    completed: bool = False
    note: str | None = None


class Lesson(LessonDraft):
    id: str = Field(min_length=1)


class ScheduledLesson(_RosterModel):
    """Day-projection row: schedule defaults overlaid with the existing lesson row, if any."""

    lesson_id: str | None
    person_id: str
    name: str
    date: dt.date
    time: str
    duration_minutes: int
    amount: int
    completed: bool


class Roster(_RosterModel):
    """A serializable snapshot of persons and lessons (JSON fixtures, CLI input)."""

    persons: list[Person] = Field(default_factory=list)
    lessons: list[Lesson] = Field(default_factory=list)
