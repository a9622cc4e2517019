"""Offline command runner.

Loads a roster JSON file into the in-memory adapter, runs one transcript through `handle_command`
and prints the result as JSON. Runs as a dry run unless `--execute` is given; `--save` writes the
updated roster back to the file after a successful execution.

Example:
    python -m src.pipeline.cli "Sarah and Tiffany came today" --roster roster.json --date 2025-02-19
"""

from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import json
from pathlib import Path

from src.config.logging import configure_logging
from src.db.load_json import read_roster
from src.pipeline.handler import CommandContext, CommandOptions, handle_command
from src.pipeline.result import CommandResult, CommandStatus
from src.roster.adapter import InMemoryAdapter
from src.roster.models import Roster


async def run(
        text: str,
        roster: Roster,
        *,
        selected_date: dt.date,
        execute: bool,
        debug: bool,
) -> tuple[CommandResult, InMemoryAdapter]:
    """Run one transcript against an in-memory copy of `roster`."""

    adapter = InMemoryAdapter(roster.persons, roster.lessons)
    result = await handle_command(
        text,
        CommandContext(selected_date=selected_date),
        adapter,
        CommandOptions(debug=debug, dry_run=not execute),
    )
    return result, adapter


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns a non-zero exit code when the command ends in an error."""

    parser = argparse.ArgumentParser(description="Interpret one lesson command against a roster file.")
    parser.add_argument("text", help="Command text, e.g. \"Leo came today\".")
    parser.add_argument("--roster", required=True, help="Path to the roster JSON file.")
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=dt.date.today(),
        help="Selected date (YYYY-MM-DD); defaults to today.",
    )
    parser.add_argument("--execute", action="store_true", help="Apply the plan (default: dry run).")
    parser.add_argument("--debug", action="store_true", help="Include parsing and resolution details.")
    parser.add_argument(
        "--save",
        action="store_true",
        help="Write the updated roster back to --roster after a successful --execute.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    roster = read_roster(args.roster)
    result, adapter = asyncio.run(
        run(args.text, roster, selected_date=args.date, execute=args.execute, debug=args.debug)
    )

    print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))

    if args.save and args.execute and result.status == CommandStatus.success:
        updated = Roster(persons=adapter.persons, lessons=adapter.lessons)
        Path(args.roster).write_text(
            json.dumps(updated.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    return 1 if result.status == CommandStatus.error else 0


if __name__ == "__main__":
    raise SystemExit(main())
