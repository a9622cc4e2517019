"""End-to-end tests for `handle_command` against the in-memory adapter.

Reference date: Wednesday 2025-02-19. Sarah, Tiffany and Chloe are scheduled on Wednesdays; Chloe
already has a row for that date and Leo has one for Tuesday 2025-02-18.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

import pytest
from conftest import REFERENCE, make_adapter

from src.intent.extractors import extract_fields
from src.intent.rules_parser import Classification
from src.pipeline.handler import (
    ADAPTER_ERROR_MESSAGE,
    EMPTY_PLAN_MESSAGE,
    SCHEMA_ERROR_MESSAGE,
    UNOFFERED_CHOICE_MESSAGE,
    VERIFICATION_FAILED_MESSAGE,
    CommandContext,
    CommandOptions,
    handle_command,
    resume_pending_command,
)
from src.pipeline.result import CommandResult, CommandStatus
from src.planner.builder import BAD_DURATION_MESSAGE, HELP_MESSAGE
from src.roster.adapter import AdapterError, InMemoryAdapter
from src.roster.models import LessonDraft, Person, Roster, ScheduleSlot

CONTEXT = CommandContext(selected_date=REFERENCE, user_id="tutor-1")


class _DroppedWriteAdapter(InMemoryAdapter):
    async def update_lesson_by_id(self, lesson_id: str, fields: Mapping[str, Any]) -> bool:
        return True


class _FailingInsertAdapter(InMemoryAdapter):
    async def add_lesson(self, draft: LessonDraft) -> str:
        raise AdapterError("insert rejected")


async def _handle(adapter: InMemoryAdapter, text: str, **options: Any) -> CommandResult:
    return await handle_command(text, CONTEXT, adapter, CommandOptions(**options))


def _rows_on(adapter: InMemoryAdapter, day: date) -> dict[str, Any]:
    return {lesson.person_id: lesson for lesson in adapter.lessons if lesson.date == day}


@pytest.mark.asyncio
async def test_named_attendance_creates_completed_rows(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Sarah and Tiffany came today")

    assert result.status == CommandStatus.success
    assert result.human_message == "Marked attended: Sarah Lee, Tiffany Chen (Wed, Feb 19)"
    rows = _rows_on(adapter, REFERENCE)
    assert rows["sarah"].completed is True
    assert rows["tiffany"].completed is True
    assert rows["tiffany"].amount == 4500
    assert len(adapter.lessons) == 4


@pytest.mark.asyncio
async def test_move_keeps_the_row_identity(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Move Leo's lesson from yesterday to tomorrow at 5pm")

    assert result.status == CommandStatus.success
    assert result.human_message == "Moved Leo Park to Thu, Feb 20 at 5:00 PM."
    moved = next(lesson for lesson in adapter.lessons if lesson.id == "leo-0218")
    assert moved.date == date(2025, 2, 20)
    assert moved.time == "5:00 PM"
    assert moved.duration_minutes == 60
    assert moved.amount == 6000
    assert "leo" not in _rows_on(adapter, date(2025, 2, 18))


@pytest.mark.asyncio
async def test_move_with_explicit_dates_and_duration(adapter: InMemoryAdapter) -> None:
    result = await _handle(
        adapter, "Move Leo's lesson from Friday Feb 18 to Sunday Feb 20 at 5pm for 1 hour"
    )

    assert result.status == CommandStatus.success
    assert result.plan is not None
    assert [step.lesson_id for step in result.plan.updates] == ["leo-0218"]
    moved = next(lesson for lesson in adapter.lessons if lesson.id == "leo-0218")
    assert (moved.date, moved.time, moved.duration_minutes) == (date(2025, 2, 20), "5:00 PM", 60)
    assert len(adapter.lessons) == 2


@pytest.mark.asyncio
async def test_mark_with_shared_first_name_offers_both(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Mark Emma attended today")

    assert result.status == CommandStatus.needs_clarification
    assert result.clarification_options is not None
    assert len(result.clarification_options) >= 2


@pytest.mark.asyncio
async def test_ambiguous_name_asks_and_writes_nothing(adapter: InMemoryAdapter, roster: Roster) -> None:
    result = await _handle(adapter, "Emma came today")

    assert result.status == CommandStatus.needs_clarification
    assert result.clarification_options == ["Emma Kim", "Emma Stone"]
    assert result.pending_command is not None
    assert adapter.lessons == roster.lessons


@pytest.mark.asyncio
async def test_unsupported_duration_writes_nothing(adapter: InMemoryAdapter, roster: Roster) -> None:
    result = await _handle(adapter, "Change Chloe duration to 25 minutes")

    assert result.status == CommandStatus.needs_clarification
    assert result.human_message == BAD_DURATION_MESSAGE
    assert adapter.lessons == roster.lessons


@pytest.mark.asyncio
async def test_bulk_attendance_with_nobody_scheduled(roster: Roster) -> None:
    persons = [person for person in roster.persons if person.schedule.day_of_week != 3]
    adapter = make_adapter(Roster(persons=persons, lessons=[]))

    result = await _handle(adapter, "All students attended today")

    assert result.status == CommandStatus.error
    assert result.human_message == "No lessons scheduled for Wed, Feb 19."
    assert adapter.lessons == []


@pytest.mark.asyncio
async def test_bulk_attendance_marks_every_scheduled_lesson(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "All students attended today")

    assert result.human_message == "Marked 3 lessons attended (Wed, Feb 19)"
    rows = _rows_on(adapter, REFERENCE)
    assert sorted(rows) == ["chloe", "sarah", "tiffany"]
    assert all(row.completed for row in rows.values())


@pytest.mark.asyncio
async def test_bulk_unmark_with_no_rows_is_an_empty_plan(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Everyone was absent tomorrow")

    assert result.status == CommandStatus.error
    assert result.human_message == EMPTY_PLAN_MESSAGE


@pytest.mark.asyncio
async def test_dry_run_returns_plan_without_writing(adapter: InMemoryAdapter, roster: Roster) -> None:
    result = await _handle(adapter, "Sarah came today", dry_run=True)

    assert result.status == CommandStatus.success
    assert result.plan is not None
    assert [step.person_id for step in result.plan.creates] == ["sarah"]
    assert adapter.lessons == roster.lessons


@pytest.mark.asyncio
async def test_repeating_a_command_does_not_duplicate_rows(adapter: InMemoryAdapter) -> None:
    await _handle(adapter, "Sarah came today")
    second = await _handle(adapter, "Sarah came today")

    assert second.status == CommandStatus.success
    assert second.plan is not None
    assert second.plan.creates == []
    sarah_rows = [lesson for lesson in adapter.lessons if lesson.person_id == "sarah"]
    assert len(sarah_rows) == 1


@pytest.mark.asyncio
async def test_one_unresolved_name_blocks_every_write(adapter: InMemoryAdapter, roster: Roster) -> None:
    result = await _handle(adapter, "Mark Sarah and Emma attended today")

    assert result.status == CommandStatus.needs_clarification
    assert adapter.lessons == roster.lessons


@pytest.mark.asyncio
async def test_unmark_without_row_asks_for_another_date(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Sarah didn't come today")

    assert result.status == CommandStatus.needs_clarification
    assert result.human_message.startswith("No lesson scheduled for Sarah Lee on Wed, Feb 19.")


@pytest.mark.asyncio
async def test_help_is_a_clarification(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "help")

    assert result.status == CommandStatus.needs_clarification
    assert result.human_message == HELP_MESSAGE


@pytest.mark.asyncio
async def test_resume_with_offered_choice(adapter: InMemoryAdapter) -> None:
    first = await _handle(adapter, "Emma came today")
    assert first.pending_command is not None

    result = await resume_pending_command(first.pending_command, "emma-stone", adapter)

    assert result.status == CommandStatus.success
    assert result.human_message == "Marked attended: Emma Stone (Wed, Feb 19)"
    assert _rows_on(adapter, REFERENCE)["emma-stone"].completed is True
    assert "emma-kim" not in _rows_on(adapter, REFERENCE)


@pytest.mark.asyncio
async def test_resume_with_unoffered_choice(adapter: InMemoryAdapter, roster: Roster) -> None:
    first = await _handle(adapter, "Emma came today")
    assert first.pending_command is not None

    result = await resume_pending_command(first.pending_command, "sarah", adapter)

    assert result.status == CommandStatus.error
    assert result.human_message == UNOFFERED_CHOICE_MESSAGE
    assert adapter.lessons == roster.lessons


@pytest.mark.asyncio
async def test_debug_output(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Sarah came today", debug=True, dry_run=True)

    assert result.debug is not None
    assert result.debug["normalized_text"] == "sarah came today"
    assert result.debug["extracted"]["names"] == ["sarah"]
    assert result.debug["raw_command"]["intent"] == "mark_attendance"
    assert result.debug["command"]["target"] == {"type": "students", "names": ["sarah"]}
    assert result.debug["resolution"][0]["resolved"][0]["person_id"] == "sarah"


@pytest.mark.asyncio
async def test_schema_rejection_is_an_error(adapter: InMemoryAdapter, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_classify(text: str, reference_date: date) -> Classification:
        return Classification(
            payload={"intent": "set_rate", "names": ["leo"], "rate_per_hour": 0},
            clarification=None,
            extracted=extract_fields(text, reference_date),
        )

    monkeypatch.setattr("src.intent.parser.classify", fake_classify)
    result = await _handle(adapter, "Change Leo's rate to $0 an hour")

    assert result.status == CommandStatus.error
    assert result.human_message == SCHEMA_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_verification_failure_is_an_error(roster: Roster) -> None:
    adapter = make_adapter(roster, _DroppedWriteAdapter)
    result = await _handle(adapter, "Chloe came today", debug=True)

    assert result.status == CommandStatus.error
    assert result.human_message == VERIFICATION_FAILED_MESSAGE
    assert result.plan is not None
    assert result.debug is not None
    assert result.debug["mismatches"][0]["lesson_id"] == "chloe-0219"


@pytest.mark.asyncio
async def test_adapter_failure_is_an_error(roster: Roster) -> None:
    adapter = make_adapter(roster, _FailingInsertAdapter)
    result = await _handle(adapter, "Sarah came today")

    assert result.status == CommandStatus.error
    assert result.human_message == ADAPTER_ERROR_MESSAGE
    assert result.plan is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("text", "person_id"),
    [("Sarah and June came today", "june"), ("Sarah and Al came today", "al")],
)
async def test_names_that_look_like_date_words_are_marked(roster: Roster, text: str, person_id: str) -> None:
    slot = ScheduleSlot(day_of_week=3, time="6:00 PM", duration_minutes=60, rate=5000)
    extra = [
        Person(id="june", first_name="June", last_name="Park", schedule=slot),
        Person(id="al", first_name="Al", last_name="Gomez", schedule=slot),
    ]
    adapter = make_adapter(Roster(persons=[*roster.persons, *extra], lessons=roster.lessons))

    result = await _handle(adapter, text)

    assert result.status == CommandStatus.success
    rows = _rows_on(adapter, REFERENCE)
    assert rows["sarah"].completed is True
    assert rows[person_id].completed is True


@pytest.mark.asyncio
async def test_repeated_name_marks_one_lesson(adapter: InMemoryAdapter) -> None:
    result = await _handle(adapter, "Sarah and Sarah came today")

    assert result.status == CommandStatus.success
    assert result.human_message == "Marked attended: Sarah Lee (Wed, Feb 19)"
    assert len([lesson for lesson in adapter.lessons if lesson.person_id == "sarah"]) == 1
