"""Structured command schema (Pydantic models).

This schema is the contract between the rules-based classifier and the command planner. Every raw
command object produced by the classifier must validate against `StructuredCommand`; otherwise the
request is treated as unsafe and rejected.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter

# Normalized clock time, e.g. "5:00 PM".
CLOCK_TIME_PATTERN = r"^(1[0-2]|[1-9]):[0-5]\d (AM|PM)$"

ClockTime = Annotated[str, StringConstraints(pattern=CLOCK_TIME_PATTERN)]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
NameList = Annotated[list[PersonName], Field(min_length=1)]


class CommandIntent(StrEnum):
    """Supported command families."""

    mark_attendance = "mark_attendance"
    unmark_attendance = "unmark_attendance"
    set_duration = "set_duration"
    set_time = "set_time"
    move_lesson = "move_lesson"
    set_rate = "set_rate"
    help = "help"


class RateScope(StrEnum):
    """Which lessons a rate change applies to."""

    single_date = "single_date"
    going_forward = "going_forward"


class _CommandModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)


class AllStudentsTarget(_CommandModel):
    """Every person scheduled (or already recorded) on the target date."""

    type: Literal["all_students"] = "all_students"


class StudentsTarget(_CommandModel):
    """Explicitly named people."""

    type: Literal["students"] = "students"
    names: NameList


AttendanceTarget = Annotated[Union[AllStudentsTarget, StudentsTarget], Field(discriminator="type")]


class MarkAttendance(_CommandModel):
    intent: Literal["mark_attendance"] = "mark_attendance"
    date: dt.date | None = None
    target: AttendanceTarget

    @property
    def present(self) -> bool:
        return True


class UnmarkAttendance(_CommandModel):
    intent: Literal["unmark_attendance"] = "unmark_attendance"
    date: dt.date | None = None
    target: AttendanceTarget

    @property
    def present(self) -> bool:
        return False


class SetDuration(_CommandModel):
    """Change the lesson duration; the allow-list is a planner policy, not a schema rule."""

    intent: Literal["set_duration"] = "set_duration"
    date: dt.date | None = None
    names: NameList
    duration_minutes: int


class SetTime(_CommandModel):
    intent: Literal["set_time"] = "set_time"
    date: dt.date | None = None
    names: NameList
    start_time: ClockTime


class MoveLesson(_CommandModel):
    """Move one person's existing lesson to another date (and optionally time/duration)."""

    intent: Literal["move_lesson"] = "move_lesson"
    name: PersonName
    from_date: dt.date | None = None
    to_date: dt.date
    to_time: ClockTime | None = None
    duration_minutes: int | None = None


class SetRate(_CommandModel):
    """Set an hourly rate (minor currency units) for the lessons of one date."""

    intent: Literal["set_rate"] = "set_rate"
    names: NameList
    effective_date: dt.date | None = None
    rate_per_hour: int = Field(gt=0)
    scope: RateScope = RateScope.single_date


class Help(_CommandModel):
    intent: Literal["help"] = "help"


AttendanceCommand = MarkAttendance | UnmarkAttendance

StructuredCommand = Annotated[
    Union[MarkAttendance, UnmarkAttendance, SetDuration, SetTime, MoveLesson, SetRate, Help],
    Field(discriminator="intent"),
]

_COMMAND_ADAPTER: TypeAdapter[Any] = TypeAdapter(StructuredCommand)


class Clarification(_CommandModel):
    """A question for the user, optionally with a finite list of answers."""

    message: str
    options: list[str] = Field(default_factory=list)


def command_from_obj(obj: Any) -> StructuredCommand:
    """Validate and parse a structured command from an arbitrary decoded JSON object."""

    return _COMMAND_ADAPTER.validate_python(obj)


def command_target_date(command: StructuredCommand) -> dt.date | None:
    """Return the explicit date a command carries (`date` or `effective_date`), if any."""

    if isinstance(command, SetRate):
        return command.effective_date
    return getattr(command, "date", None)
