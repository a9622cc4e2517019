"""Command planner: turn a validated command into a concrete, verifiable plan.

The planner only reads from the adapter. It resolves names, looks up existing rows and decides for
each target person whether to update a row, create one, or stop and ask the user. Every outcome is
a `CommandResult`; expected situations (unknown names, missing rows, unsupported values) become
clarifications rather than exceptions.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Mapping, Sequence

from src.intent.dates import format_pretty_date
from src.intent.schema import (
    AllStudentsTarget,
    Help,
    MarkAttendance,
    MoveLesson,
    RateScope,
    SetDuration,
    SetRate,
    SetTime,
    StructuredCommand,
    UnmarkAttendance,
    command_target_date,
)
from src.pipeline.result import CommandResult, PendingCommand
from src.planner.plan import ALLOWED_DURATIONS, LessonChanges, PlanCreate, PlanUpdate, make_plan
from src.roster.adapter import LessonStoreAdapter
from src.roster.models import Person
from src.roster.resolver import NameResolution, resolve_names
from src.roster.schedule import default_draft, default_slot, find_lesson, hourly_amount, scale_amount

logger = logging.getLogger(__name__)

HELP_MESSAGE = (
    "Try: 'Chloe and Leo came today', 'All students attended today', or "
    "'Move Leo from Friday to Sunday at 5pm'."
)
BAD_DURATION_MESSAGE = "Supported durations are 30, 45, 60, 90, or 120 minutes."
GOING_FORWARD_MESSAGE = (
    "Going-forward recurring rate changes are not supported yet. "
    "I can update a single lesson rate by date."
)


def _joined(names: Sequence[str]) -> str:
    return ", ".join(names)


class _Planner:
    def __init__(
            self,
            adapter: LessonStoreAdapter,
            *,
            selected_date: dt.date,
            pinned: Mapping[str, str] | None,
    ) -> None:
        self.adapter = adapter
        self.selected_date = selected_date
        self.pinned = dict(pinned or {})
        self.persons = adapter.persons
        self.lessons = adapter.lessons
        self.resolutions: list[NameResolution] = []

    def plan(self, command: StructuredCommand, target: dt.date) -> CommandResult:
        if isinstance(command, Help):
            return CommandResult.clarification(HELP_MESSAGE)
        if isinstance(command, (MarkAttendance, UnmarkAttendance)):
            if isinstance(command.target, AllStudentsTarget):
                return self._bulk_attendance(command, target)
            return self._named_attendance(command, target)
        if isinstance(command, SetDuration):
            return self._set_duration(command, target)
        if isinstance(command, SetTime):
            return self._set_time(command, target)
        if isinstance(command, MoveLesson):
            return self._move_lesson(command)
        if isinstance(command, SetRate):
            return self._set_rate(command, target)
        return CommandResult.error("Unsupported command.")

    def _resolve(
            self,
            command: StructuredCommand,
            names: Sequence[str],
            *,
            missing_message: str | None = None,
    ) -> tuple[list[Person], CommandResult | None]:
        """Resolve every name or return the clarification that blocks the whole command."""

        resolution = resolve_names(names, self.persons, self.pinned)
        self.resolutions.append(resolution)

        if resolution.ambiguous:
            first = resolution.ambiguous[0]
            choices = first.choices
            pending = PendingCommand(
                command=command,
                fragment=first.fragment,
                candidate_ids=[c.person.id for c in choices],
                selected_date=self.selected_date,
                pinned=self.pinned,
            )
            return [], CommandResult.clarification(
                f"Which {first.fragment}?",
                [c.person.full_name for c in choices],
                pending=pending,
            )
        if resolution.missing:
            message = missing_message or f"I couldn't find: {_joined(resolution.missing)}."
            return [], CommandResult.clarification(message)
        return [match.person for match in resolution.resolved], None

    def _bulk_attendance(self, command: MarkAttendance | UnmarkAttendance, day: dt.date) -> CommandResult:
        present = command.present
        by_id = {person.id: person for person in self.persons}
        rows = [row for row in self.adapter.scheduled_lessons_for_date(day) if row.person_id in by_id]
        if not rows:
            return CommandResult.error(f"No lessons scheduled for {format_pretty_date(day)}.")

        updates: list[PlanUpdate] = []
        creates: list[PlanCreate] = []
        for row in rows:
            person = by_id[row.person_id]
            if row.lesson_id is not None:
                updates.append(self._update(row.lesson_id, person, day, LessonChanges(completed=present)))
            elif present:
                creates.append(self._create(person, day, completed=True))

        plan = make_plan(command.intent, day, updates, creates)
        if present:
            message = f"Marked {len(updates) + len(creates)} lessons attended ({format_pretty_date(day)})"
        else:
            message = f"Marked {len(updates)} lessons not attended ({format_pretty_date(day)})"
        return CommandResult.success(message, plan)

    def _named_attendance(self, command: MarkAttendance | UnmarkAttendance, day: dt.date) -> CommandResult:
        persons, blocked = self._resolve(command, command.target.names)
        if blocked is not None:
            return blocked

        present = command.present
        updates: list[PlanUpdate] = []
        creates: list[PlanCreate] = []
        for person in persons:
            existing = find_lesson(self.lessons, person.id, day)
            if existing is not None:
                updates.append(self._update(existing.id, person, day, LessonChanges(completed=present)))
            elif present:
                creates.append(self._create(person, day, completed=True))
            else:
                return CommandResult.clarification(
                    f"No lesson scheduled for {person.full_name} on {format_pretty_date(day)}. "
                    "Do you mean another date?"
                )

        label = "Marked attended" if present else "Marked not attended"
        names = _joined([person.full_name for person in persons])
        return CommandResult.success(
            f"{label}: {names} ({format_pretty_date(day)})",
            make_plan(command.intent, day, updates, creates),
        )

    def _set_duration(self, command: SetDuration, day: dt.date) -> CommandResult:
        minutes = command.duration_minutes
        if minutes not in ALLOWED_DURATIONS:
            return CommandResult.clarification(BAD_DURATION_MESSAGE)

        persons, blocked = self._resolve(command, command.names)
        if blocked is not None:
            return blocked

        updates: list[PlanUpdate] = []
        creates: list[PlanCreate] = []
        for person in persons:
            existing = find_lesson(self.lessons, person.id, day)
            if existing is not None:
                changes = LessonChanges(
                    duration_minutes=minutes,
                    amount=scale_amount(existing.amount, existing.duration_minutes, minutes),
                )
                updates.append(self._update(existing.id, person, day, changes))
            else:
                creates.append(self._create(person, day, completed=False, duration_minutes=minutes))

        names = _joined([step.person_name for step in [*updates, *creates]])
        return CommandResult.success(
            f"Updated duration to {minutes} min: {names} ({format_pretty_date(day)})",
            make_plan(command.intent, day, updates, creates),
        )

    def _set_time(self, command: SetTime, day: dt.date) -> CommandResult:
        persons, blocked = self._resolve(command, command.names)
        if blocked is not None:
            return blocked

        updates: list[PlanUpdate] = []
        creates: list[PlanCreate] = []
        for person in persons:
            existing = find_lesson(self.lessons, person.id, day)
            if existing is not None:
                updates.append(self._update(existing.id, person, day, LessonChanges(time=command.start_time)))
            else:
                creates.append(self._create(person, day, completed=False, time=command.start_time))

        names = _joined([step.person_name for step in [*updates, *creates]])
        return CommandResult.success(
            f"Updated time to {command.start_time}: {names} ({format_pretty_date(day)})",
            make_plan(command.intent, day, updates, creates),
        )

    def _move_lesson(self, command: MoveLesson) -> CommandResult:
        if command.duration_minutes is not None and command.duration_minutes not in ALLOWED_DURATIONS:
            return CommandResult.clarification(BAD_DURATION_MESSAGE)

        persons, blocked = self._resolve(
            command, [command.name], missing_message=f"I couldn't find {command.name}."
        )
        if blocked is not None:
            return blocked

        person = persons[0]
        from_date = command.from_date or self.selected_date
        source = find_lesson(self.lessons, person.id, from_date)
        if source is None:
            return CommandResult.clarification(
                f"No lesson found for {person.full_name} on {format_pretty_date(from_date)}."
            )

        clash = find_lesson(self.lessons, person.id, command.to_date)
        if clash is not None and clash.id != source.id:
            return CommandResult.clarification(
                f"{person.full_name} already has a lesson on {format_pretty_date(command.to_date)}."
            )

        changes = LessonChanges(
            date=command.to_date,
            time=command.to_time,
            duration_minutes=command.duration_minutes,
            amount=(
                scale_amount(source.amount, source.duration_minutes, command.duration_minutes)
                if command.duration_minutes is not None
                else None
            ),
        )
        update = self._update(source.id, person, command.to_date, changes)
        at = f" at {command.to_time}" if command.to_time else ""
        return CommandResult.success(
            f"Moved {person.full_name} to {format_pretty_date(command.to_date)}{at}.",
            make_plan(command.intent, command.to_date, [update], []),
        )

    def _set_rate(self, command: SetRate, day: dt.date) -> CommandResult:
        if command.scope == RateScope.going_forward:
            return CommandResult.clarification(GOING_FORWARD_MESSAGE)

        persons, blocked = self._resolve(command, command.names)
        if blocked is not None:
            return blocked

        rows = {row.person_id: row for row in self.adapter.scheduled_lessons_for_date(day)}
        updates: list[PlanUpdate] = []
        creates: list[PlanCreate] = []
        for person in persons:
            row = rows.get(person.id)
            if row is not None and row.lesson_id is not None:
                amount = hourly_amount(command.rate_per_hour, row.duration_minutes)
                updates.append(self._update(row.lesson_id, person, day, LessonChanges(amount=amount)))
                continue
            minutes = row.duration_minutes if row is not None else default_slot(person, day).duration_minutes
            amount = hourly_amount(command.rate_per_hour, minutes)
            creates.append(self._create(person, day, completed=False, duration_minutes=minutes, amount=amount))

        names = _joined([step.person_name for step in [*updates, *creates]])
        return CommandResult.success(
            f"Updated rate for {names} on {format_pretty_date(day)}.",
            make_plan(command.intent, day, updates, creates),
        )

    @staticmethod
    def _update(lesson_id: str, person: Person, day: dt.date, changes: LessonChanges) -> PlanUpdate:
        return PlanUpdate(
            lesson_id=lesson_id,
            person_id=person.id,
            person_name=person.full_name,
            date=day,
            changes=changes,
        )

    @staticmethod
    def _create(person: Person, day: dt.date, *, completed: bool, **overrides) -> PlanCreate:
        return PlanCreate(
            person_id=person.id,
            person_name=person.full_name,
            date=day,
            lesson=default_draft(person, day, completed=completed, **overrides),
        )


def build_plan(
        command: StructuredCommand,
        adapter: LessonStoreAdapter,
        *,
        selected_date: dt.date,
        pinned: Mapping[str, str] | None = None,
        debug: bool = False,
) -> CommandResult:
    """Plan a validated command against the adapter's current snapshot.

    Args:
        command: Validated structured command.
        adapter: Lesson store; only its read accessors are used.
        selected_date: Date selected by the caller, used when the command carries none.
        pinned: Fragment -> person id choices from earlier clarifications.
        debug: Attach name-resolution details to the result.

    Returns:
        A success result carrying the plan, or a clarification/error result without one.
    """

    target = command_target_date(command) or selected_date
    planner = _Planner(adapter, selected_date=selected_date, pinned=pinned)
    result = planner.plan(command, target)
    logger.debug(
        "planned intent=%s status=%s pinned=%d", command.intent, result.status, len(planner.pinned)
    )
    if debug and planner.resolutions:
        result.debug = {"resolution": [resolution.as_dict() for resolution in planner.resolutions]}
    return result
