"""Load a roster JSON file into Postgres.

The file is a JSON object with `persons` (each with an embedded weekly `schedule`) and optional
`lessons`, the same shape the offline CLI reads. All rows are stored under one `--owner-id` (the
Telegram user id of the roster owner).
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from src.config.logging import configure_logging
from src.db.connection import open_roster_connection
from src.db.dataset_rows import iter_lesson_rows, iter_person_rows
from src.roster.models import Roster

logger = logging.getLogger(__name__)


def read_roster(path: str | Path) -> Roster:
    """Read and validate a roster JSON file.

    Raises:
        ValueError: If the file is not a valid roster document.
    """

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict) or not isinstance(payload.get("persons"), list):
        raise ValueError("Unexpected roster format: expected object with key 'persons' containing a list")
    try:
        return Roster.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid roster file: {exc}") from exc


def load_roster(*, path: str, owner_id: str, truncate: bool) -> Roster:
    """Upsert the roster's persons and lessons for `owner_id`."""

    roster = read_roster(path)

    with open_roster_connection() as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                if truncate:
                    cur.execute("DELETE FROM persons WHERE owner_id = %s", (owner_id,), prepare=False)

                cur.executemany(
                    """
                    INSERT INTO persons (id, owner_id, first_name, last_name, schedule,
                                         additional_schedules, schedule_change, terminated_from)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s) ON CONFLICT (id) DO
                    UPDATE SET
                        owner_id = EXCLUDED.owner_id,
                        first_name = EXCLUDED.first_name,
                        last_name = EXCLUDED.last_name,
                        schedule = EXCLUDED.schedule,
                        additional_schedules = EXCLUDED.additional_schedules,
                        schedule_change = EXCLUDED.schedule_change,
                        terminated_from = EXCLUDED.terminated_from
                    """,
                    list(iter_person_rows(roster.persons, owner_id)),
                )

                if roster.lessons:
                    cur.executemany(
                        """
                        INSERT INTO lessons (id, owner_id, person_id, lesson_date, time_of_day,
                                             duration_minutes, amount_minor, completed, note)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s) ON CONFLICT (id) DO
                        UPDATE SET
                            lesson_date = EXCLUDED.lesson_date,
                            time_of_day = EXCLUDED.time_of_day,
                            duration_minutes = EXCLUDED.duration_minutes,
                            amount_minor = EXCLUDED.amount_minor,
                            completed = EXCLUDED.completed,
                            note = EXCLUDED.note,
                            updated_at = NOW()
                        """,
                        list(iter_lesson_rows(roster.lessons, owner_id)),
                    )

    logger.info("loaded owner=%s persons=%d lessons=%d", owner_id, len(roster.persons), len(roster.lessons))
    return roster


def main() -> None:
    """CLI entry point for loading a roster into Postgres."""

    parser = argparse.ArgumentParser(description="Load a roster JSON file into Postgres.")
    parser.add_argument("--path", required=True, help="Path to the roster JSON file.")
    parser.add_argument("--owner-id", required=True, help="Roster owner (Telegram user id).")
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Delete the owner's existing persons and lessons before loading (destructive).",
    )
    args = parser.parse_args()

    configure_logging()
    load_roster(path=args.path, owner_id=args.owner_id, truncate=args.truncate)


if __name__ == "__main__":
    main()
