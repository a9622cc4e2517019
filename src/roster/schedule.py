"""Effective schedule helpers.

A person's effective slot set on a date is the schedule-change override when one is in effect
(date >= effective_from), otherwise the primary slot plus additional slots. A terminated person
stays visible up to and including `terminated_from`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from src.intent.dates import day_of_week
from src.roster.models import Lesson, LessonDraft, Person, ScheduledLesson, ScheduleSlot

_UNPARSEABLE_TIME_KEY = 24 * 60


def round_half_up(value: Decimal) -> int:
    """Round a decimal amount to an integer, halves away from zero."""

    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def scale_amount(amount: int, from_minutes: int, to_minutes: int) -> int:
    """Rescale an amount to a new duration, holding the per-minute rate constant."""

    return round_half_up(Decimal(amount) * Decimal(to_minutes) / Decimal(max(1, from_minutes)))


def hourly_amount(rate_per_hour: int, minutes: int) -> int:
    """Return the amount for a lesson of `minutes` at an hourly rate."""

    return round_half_up(Decimal(rate_per_hour) * Decimal(minutes) / Decimal(60))


def time_sort_key(value: str) -> int:
    """Minutes since midnight for an `H:MM AM/PM` string (unparseable values sort last)."""

    try:
        clock, suffix = value.strip().split(" ")
        hour_text, minute_text = clock.split(":")
        hour = int(hour_text) % 12 + (12 if suffix.upper() == "PM" else 0)
        return hour * 60 + int(minute_text)
    except ValueError:
        return _UNPARSEABLE_TIME_KEY


def active_slots(person: Person, day: date) -> list[ScheduleSlot]:
    change = person.schedule_change
    if change is not None and day >= change.effective_from:
        return [change.schedule, *change.additional_schedules]
    return [person.schedule, *person.additional_schedules]


def is_active(person: Person, day: date) -> bool:
    return person.terminated_from is None or day <= person.terminated_from


def slot_for_day(person: Person, day: date) -> ScheduleSlot | None:
    """Return the slot scheduling `person` on `day`, or `None` if they are not scheduled."""

    if not is_active(person, day):
        return None
    weekday = day_of_week(day)
    for slot in active_slots(person, day):
        if slot.day_of_week == weekday:
            return slot
    return None


def default_slot(person: Person, day: date) -> ScheduleSlot:
    """The slot whose defaults apply to a lesson on `day` (the day's slot, else the primary)."""

    return slot_for_day(person, day) or active_slots(person, day)[0]


def persons_for_day(persons: Iterable[Person], day: date) -> list[Person]:
    """Persons scheduled on `day`, ordered by their slot time."""

    scheduled = [(slot, person) for person in persons if (slot := slot_for_day(person, day))]
    scheduled.sort(key=lambda pair: time_sort_key(pair[0].time))
    return [person for _, person in scheduled]


def find_lesson(lessons: Iterable[Lesson], person_id: str, day: date) -> Lesson | None:
    return next((lesson for lesson in lessons if lesson.person_id == person_id and lesson.date == day), None)


def default_draft(
        person: Person,
        day: date,
        *,
        completed: bool,
        time: str | None = None,
        duration_minutes: int | None = None,
        amount: int | None = None,
) -> LessonDraft:
    """Build a new lesson row from the person's default slot plus explicit overrides.

    Without an explicit amount, the slot rate is rescaled to the lesson duration.
    """

    slot = default_slot(person, day)
    duration = duration_minutes if duration_minutes is not None else slot.duration_minutes
    return LessonDraft(
        person_id=person.id,
        date=day,
        time=time or slot.time,
        duration_minutes=duration,
        amount=amount if amount is not None else scale_amount(slot.rate, slot.duration_minutes, duration),
        completed=completed,
    )


def day_projection(
        persons: Sequence[Person],
        lessons: Sequence[Lesson],
        day: date,
) -> list[ScheduledLesson]:
    """Combine schedule defaults with existing lesson rows for one date.

    Includes every scheduled person plus anyone with a row on that date (e.g. a lesson moved in
    from another day).
    """

    by_id = {person.id: person for person in persons}
    rows: list[ScheduledLesson] = []
    seen: set[str] = set()

    for person in persons_for_day(persons, day):
        seen.add(person.id)
        lesson = find_lesson(lessons, person.id, day)
        if lesson is not None:
            rows.append(_row_from_lesson(lesson, person))
            continue
        slot = default_slot(person, day)
        rows.append(
            ScheduledLesson(
                lesson_id=None,
                person_id=person.id,
                name=person.full_name,
                date=day,
                time=slot.time,
                duration_minutes=slot.duration_minutes,
                amount=slot.rate,
                completed=False,
            )
        )

    for lesson in lessons:
        if lesson.date != day or lesson.person_id in seen or lesson.person_id not in by_id:
            continue
        seen.add(lesson.person_id)
        rows.append(_row_from_lesson(lesson, by_id[lesson.person_id]))

    rows.sort(key=lambda row: time_sort_key(row.time))
    return rows


def _row_from_lesson(lesson: Lesson, person: Person) -> ScheduledLesson:
    return ScheduledLesson(
        lesson_id=lesson.id,
        person_id=person.id,
        name=person.full_name,
        date=lesson.date,
        time=lesson.time,
        duration_minutes=lesson.duration_minutes,
        amount=lesson.amount,
        completed=lesson.completed,
    )
