"""Integration tests against a real Postgres database.

These tests exercise the end-to-end pipeline:
rules parser -> planner -> Postgres lesson store (async pool) -> read-back verification.

They are skipped if `DATABASE_URL` is not configured or the DB is unreachable.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, LiteralString, NoReturn, cast

import psycopg
import pytest
from conftest import REFERENCE, load_fixture_roster
from dotenv import load_dotenv
from psycopg import AsyncConnection, sql
from psycopg_pool import AsyncConnectionPool

from src.db.connection import open_roster_connection
from src.db.dataset_rows import iter_lesson_rows, iter_person_rows
from src.db.pool import create_pool, get_conn
from src.db.store import PostgresLessonStore
from src.pipeline.handler import CommandContext, handle_command
from src.pipeline.result import CommandStatus

_MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "src" / "db" / "migrations"
_OWNER_ID = "owner-1"


def _skip(reason: str) -> NoReturn:
    pytest.skip(reason)


def _require_database_url() -> str:
    load_dotenv(".env")
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        _skip("DATABASE_URL is not set; skipping integration tests")
    return database_url


@pytest.fixture(scope="session")
def prepared_schema() -> Iterator[str]:
    """Create an isolated schema, run migrations, and load the roster fixture."""

    database_url = _require_database_url()
    schema = f"it_{uuid.uuid4().hex}"
    roster = load_fixture_roster()

    try:
        conn_ctx = open_roster_connection(database_url)
    except psycopg.OperationalError as exc:
        _skip(f"Postgres is unreachable ({exc}); skipping integration tests")

    with conn_ctx as conn:
        with conn.transaction():
            conn.execute(
                sql.SQL("CREATE SCHEMA {}").format(sql.Identifier(schema)),
                prepare=False,
            )
            conn.execute(
                sql.SQL("SET search_path TO {}").format(sql.Identifier(schema)),
                prepare=False,
            )

            for migration_name in ("001_create_tables.sql", "002_create_indexes.sql"):
                sql_text = (_MIGRATIONS_DIR / migration_name).read_text(encoding="utf-8")
                conn.execute(cast(LiteralString, sql_text), prepare=False)

            with conn.cursor() as cur:
                cur.executemany(
                    """
                    INSERT INTO persons (id, owner_id, first_name, last_name, schedule,
                                         additional_schedules, schedule_change, terminated_from)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    list(iter_person_rows(roster.persons, _OWNER_ID)),
                )
                cur.executemany(
                    """
                    INSERT INTO lessons (id, owner_id, person_id, lesson_date, time_of_day,
                                         duration_minutes, amount_minor, completed, note)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    list(iter_lesson_rows(roster.lessons, _OWNER_ID)),
                )

    yield schema

    # noinspection PyBroadException
    try:
        with psycopg.connect(database_url) as conn:
            with conn.transaction():
                conn.execute(
                    sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(sql.Identifier(schema)),
                    prepare=False,
                )
    except Exception:
        # Cleanup best-effort: do not fail test run on teardown.
        pass


@pytest.fixture
async def pool() -> AsyncIterator[AsyncConnectionPool]:
    """Create an async connection pool for integration tests."""

    database_url = _require_database_url()
    db_pool = create_pool(database_url, max_size=2)
    try:
        await db_pool.open(wait=True)
    except Exception as exc:
        _skip(f"Postgres is unreachable ({exc}); skipping integration tests")
    yield db_pool
    await db_pool.close()


@asynccontextmanager
async def _schema_conn(pool: Any, schema: str) -> AsyncIterator[AsyncConnection]:
    async with get_conn(pool) as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                sql.SQL("SET search_path TO {}").format(sql.Identifier(schema)),
                prepare=False,
            )
        await conn.commit()
        yield conn


@pytest.mark.asyncio
async def test_pool_enforces_utc_timezone(pool: Any, prepared_schema: str) -> None:
    async with _schema_conn(pool, prepared_schema) as conn:
        async with conn.cursor() as cur:
            await cur.execute("SHOW TimeZone", prepare=False)
            row = await cur.fetchone()
        assert row is not None
        assert row[0] == "UTC"


@pytest.mark.asyncio
async def test_store_loads_owner_roster(pool: Any, prepared_schema: str) -> None:
    async with _schema_conn(pool, prepared_schema) as conn:
        store = await PostgresLessonStore.load(conn, _OWNER_ID)
        other = await PostgresLessonStore.load(conn, "someone-else")

    assert sorted(person.id for person in store.persons) == [
        "chloe", "emma-kim", "emma-stone", "leo", "sarah", "tiffany"
    ]
    leo = next(person for person in store.persons if person.id == "leo")
    assert leo.additional_schedules[0].day_of_week == 5
    assert {lesson.id for lesson in store.lessons} >= {"leo-0218", "chloe-0219"}
    assert other.persons == []
    assert other.lessons == []


@pytest.mark.asyncio
async def test_attendance_end_to_end(pool: Any, prepared_schema: str) -> None:
    context = CommandContext(selected_date=REFERENCE, user_id=_OWNER_ID)

    async with _schema_conn(pool, prepared_schema) as conn:
        store = await PostgresLessonStore.load(conn, _OWNER_ID)
        result = await handle_command("Sarah and Tiffany came today", context, store)

    assert result.status == CommandStatus.success

    async with _schema_conn(pool, prepared_schema) as conn:
        reloaded = await PostgresLessonStore.load(conn, _OWNER_ID)
    rows = {lesson.person_id: lesson for lesson in reloaded.lessons if lesson.date == REFERENCE}
    assert rows["sarah"].completed is True
    assert rows["tiffany"].amount == 4500


@pytest.mark.asyncio
async def test_move_end_to_end(pool: Any, prepared_schema: str) -> None:
    context = CommandContext(selected_date=REFERENCE, user_id=_OWNER_ID)

    async with _schema_conn(pool, prepared_schema) as conn:
        store = await PostgresLessonStore.load(conn, _OWNER_ID)
        result = await handle_command("Move Leo's lesson from yesterday to tomorrow at 5pm", context, store)

    assert result.status == CommandStatus.success

    async with _schema_conn(pool, prepared_schema) as conn:
        reloaded = await PostgresLessonStore.load(conn, _OWNER_ID)
    moved = next(lesson for lesson in reloaded.lessons if lesson.id == "leo-0218")
    assert moved.date.isoformat() == "2025-02-20"
    assert moved.time == "5:00 PM"


@pytest.mark.asyncio
async def test_update_of_other_owners_lesson_is_not_applied(pool: Any, prepared_schema: str) -> None:
    async with _schema_conn(pool, prepared_schema) as conn:
        store = await PostgresLessonStore.load(conn, "someone-else")
        applied = await store.update_lesson_by_id("chloe-0219", {"completed": True})

    assert applied is False
