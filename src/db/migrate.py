"""Apply SQL migrations to the configured PostgreSQL database.

Migrations are plain `.sql` files under `src/db/migrations/`, applied in lexicographic order. Applied
filenames are tracked in `schema_migrations`, so re-running only applies what is new.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import LiteralString, cast

import psycopg

from src.config.logging import configure_logging
from src.db.connection import open_roster_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_SCHEMA_MIGRATIONS_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations
(
    filename   TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_RECREATE_SQL = """
DROP TABLE IF EXISTS lessons;
DROP TABLE IF EXISTS persons;
DROP TABLE IF EXISTS schema_migrations;
"""


def list_migration_files(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    """Return the `.sql` migrations in apply order."""

    if not directory.exists():
        raise RuntimeError(f"Migrations directory does not exist: {directory}")

    files = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".sql")
    if not files:
        raise RuntimeError(f"No .sql migration files found in {directory}")
    return files


def _applied_migrations(conn: psycopg.Connection) -> set[str]:
    rows = conn.execute("SELECT filename FROM schema_migrations", prepare=False).fetchall()
    return {r[0] for r in rows}


def _apply_migration(conn: psycopg.Connection, path: Path) -> None:
    sql_text = path.read_text(encoding="utf-8")
    with conn.transaction():
        conn.execute(cast(LiteralString, sql_text), prepare=False)
        conn.execute(
            "INSERT INTO schema_migrations(filename) VALUES (%s)",
            (path.name,),
            prepare=False,
        )


def migrate(*, recreate: bool, list_only: bool = False) -> list[str]:
    """Run pending migrations against `DATABASE_URL`.

    Returns:
        Filenames that were applied (or, with `list_only`, that would be applied).
    """

    files = list_migration_files()

    with open_roster_connection() as conn:
        if recreate and not list_only:
            logger.warning("recreate requested, dropping roster tables")
            conn.execute(_RECREATE_SQL, prepare=False)

        conn.execute(_SCHEMA_MIGRATIONS_DDL, prepare=False)
        applied = _applied_migrations(conn)
        pending = [path for path in files if path.name not in applied]

        if list_only:
            return [path.name for path in pending]

        for path in pending:
            _apply_migration(conn, path)
            logger.info("applied migration=%s", path.name)

    return [path.name for path in pending]


def main() -> None:
    """CLI entry point for applying migrations."""

    parser = argparse.ArgumentParser(description="Apply SQL migrations to Postgres.")
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop the roster tables and re-apply all migrations (destructive).",
    )
    parser.add_argument(
        "--list",
        dest="list_only",
        action="store_true",
        help="Print pending migrations without applying them.",
    )
    args = parser.parse_args()

    configure_logging()
    names = migrate(recreate=args.recreate, list_only=args.list_only)
    for name in names:
        print(name)


if __name__ == "__main__":
    main()
