"""Command entry point.

`handle_command` runs the whole pipeline for one transcript: classification and schema validation,
planning against the adapter snapshot, execution, and read-back verification. Every outcome is a
`CommandResult`; module errors are caught here and never leak details into the user message.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from time import monotonic
from typing import Any

from src.intent.normalize import normalize_text
from src.intent.parser import CommandSchemaError, parse_command
from src.intent.schema import StructuredCommand
from src.pipeline.executor import EmptyPlanError, execute_plan
from src.pipeline.result import CommandResult, CommandStatus, PendingCommand
from src.planner.builder import build_plan
from src.roster.adapter import AdapterError, LessonStoreAdapter

logger = logging.getLogger(__name__)

SCHEMA_ERROR_MESSAGE = "I couldn't parse that command safely."
EMPTY_PLAN_MESSAGE = "No updates were generated from that command."
VERIFICATION_FAILED_MESSAGE = "I could not verify all lesson updates. Nothing was confirmed."
ADAPTER_ERROR_MESSAGE = "I couldn't save those lesson updates. Nothing was confirmed."
UNOFFERED_CHOICE_MESSAGE = "That choice wasn't one of the options. Nothing was changed."


@dataclass(frozen=True)
class CommandContext:
    """Caller context: the date selected in the UI, plus who is asking."""

    selected_date: dt.date
    user_id: str | None = None
    timezone: str = "UTC"


@dataclass(frozen=True)
class CommandOptions:
    debug: bool = False
    # Plan without writing; the result carries the would-be plan.
    dry_run: bool = False


async def _plan_and_execute(
        command: StructuredCommand,
        adapter: LessonStoreAdapter,
        *,
        selected_date: dt.date,
        options: CommandOptions,
        pinned: dict[str, str] | None = None,
) -> CommandResult:
    planned = build_plan(
        command,
        adapter,
        selected_date=selected_date,
        pinned=pinned,
        debug=options.debug,
    )
    if planned.status != CommandStatus.success or planned.plan is None:
        return planned

    plan = planned.plan
    if plan.is_empty:
        return CommandResult.error(EMPTY_PLAN_MESSAGE)
    if options.dry_run:
        return planned

    try:
        report = await execute_plan(plan, adapter)
    except EmptyPlanError:
        return CommandResult.error(EMPTY_PLAN_MESSAGE)
    except AdapterError as exc:
        logger.warning("adapter failed intent=%s error=%s", plan.intent, exc)
        return CommandResult.error(ADAPTER_ERROR_MESSAGE, plan)

    if not report.confirmed:
        result = CommandResult.error(VERIFICATION_FAILED_MESSAGE, plan)
        if options.debug:
            result.debug = {
                **(planned.debug or {}),
                "mismatches": [
                    {"lesson_id": m.lesson_id, "field": m.field, "expected": str(m.expected), "actual": str(m.actual)}
                    for m in report.mismatches
                ],
            }
        return result

    return planned


async def handle_command(
        transcript: str,
        context: CommandContext,
        adapter: LessonStoreAdapter,
        options: CommandOptions | None = None,
) -> CommandResult:
    """Interpret one transcript and apply it to the lesson store.

    Args:
        transcript: Raw user text.
        context: Caller context; `selected_date` is the reference for relative dates.
        adapter: Lesson store adapter.
        options: Debug and dry-run switches.

    Returns:
        `success` with the confirmed (or, in dry run, would-be) plan; `needs_clarification` with a
        question and optional choices; or `error` stating that nothing was confirmed.
    """

    options = options or CommandOptions()
    started = monotonic()

    try:
        parsed = parse_command(transcript, context.selected_date)
    except CommandSchemaError:
        result = CommandResult.error(SCHEMA_ERROR_MESSAGE)
        _log_handled(None, result, started, context)
        return result

    if parsed.command is None:
        clarification = parsed.clarification
        result = CommandResult.clarification(
            clarification.message if clarification else SCHEMA_ERROR_MESSAGE,
            clarification.options if clarification else None,
        )
    else:
        result = await _plan_and_execute(
            parsed.command,
            adapter,
            selected_date=context.selected_date,
            options=options,
        )

    if options.debug:
        debug: dict[str, Any] = {
            "normalized_text": normalize_text(transcript),
            "extracted": parsed.extracted.as_dict(),
            "raw_command": parsed.payload,
            "command": parsed.command.model_dump(mode="json") if parsed.command else None,
        }
        result.debug = {**debug, **(result.debug or {})}

    _log_handled(parsed.command, result, started, context)
    return result


async def resume_pending_command(
        pending: PendingCommand,
        person_id: str,
        adapter: LessonStoreAdapter,
        options: CommandOptions | None = None,
) -> CommandResult:
    """Continue a command that stopped on an ambiguous name, using the person the user picked."""

    options = options or CommandOptions()
    started = monotonic()

    if person_id not in pending.candidate_ids:
        result = CommandResult.error(UNOFFERED_CHOICE_MESSAGE)
    else:
        result = await _plan_and_execute(
            pending.command,
            adapter,
            selected_date=pending.selected_date,
            options=options,
            pinned={**pending.pinned, pending.fragment: person_id},
        )

    _log_handled(pending.command, result, started, None)
    return result


def _log_handled(
        command: StructuredCommand | None,
        result: CommandResult,
        started: float,
        context: CommandContext | None,
) -> None:
    latency_ms = int((monotonic() - started) * 1000)
    logger.info(
        "handled intent=%s status=%s user=%s latency_ms=%d",
        command.intent if command else None,
        result.status,
        context.user_id if context else None,
        latency_ms,
    )
