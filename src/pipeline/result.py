"""Command result types returned by the entry point."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.intent.schema import StructuredCommand
from src.planner.plan import CommandPlan


class CommandStatus(StrEnum):
    success = "success"
    needs_clarification = "needs_clarification"
    error = "error"


class PendingCommand(BaseModel):
    """A validated command parked behind a name clarification."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: StructuredCommand
    fragment: str
    candidate_ids: list[str]
    selected_date: dt.date
    # Fragments already chosen in earlier rounds (folded fragment -> person id).
    pinned: dict[str, str] = Field(default_factory=dict)


class CommandResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: CommandStatus
    human_message: str
    plan: CommandPlan | None = None
    clarification_options: list[str] | None = None
    pending_command: PendingCommand | None = None
    debug: dict[str, Any] | None = None

    @classmethod
    def success(cls, message: str, plan: CommandPlan | None = None) -> CommandResult:
        return cls(status=CommandStatus.success, human_message=message, plan=plan)

    @classmethod
    def clarification(
            cls,
            message: str,
            options: list[str] | None = None,
            *,
            pending: PendingCommand | None = None,
    ) -> CommandResult:
        return cls(
            status=CommandStatus.needs_clarification,
            human_message=message,
            clarification_options=list(options) if options else None,
            pending_command=pending,
        )

    @classmethod
    def error(cls, message: str, plan: CommandPlan | None = None) -> CommandResult:
        return cls(status=CommandStatus.error, human_message=message, plan=plan)
