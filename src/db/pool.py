"""Async Postgres connection pool.

The bot acquires one pooled connection per message; the lesson store runs its reads, writes and
verification read-back on it. psycopg_pool commits when the connection is returned cleanly and
rolls back when the block raises.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from src.db.connection import UTC_SESSION_SQL, resolve_database_url


async def _configure_session(conn: AsyncConnection) -> None:
    """Lock the session timezone to UTC (applied once per new pooled connection)."""

    async with conn.cursor() as cur:
        await cur.execute(UTC_SESSION_SQL, prepare=False)
    # `SET` starts a transaction when autocommit is disabled; commit so the pool doesn't see INTRANS.
    await conn.commit()


def create_pool(
        database_url: str | None = None,
        *,
        min_size: int = 1,
        max_size: int | None = None,
        timeout: float = 30.0,
) -> AsyncConnectionPool:
    """Create an async DB pool.

    Notes:
        - The returned pool is created with `open=False`. Call `await pool.open()` at startup.
        - If `database_url` is omitted, the function loads `.env` and reads `DATABASE_URL`.
    """

    return AsyncConnectionPool(
        conninfo=resolve_database_url(database_url),
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        open=False,
        configure=_configure_session,
    )


@asynccontextmanager
async def get_conn(pool: AsyncConnectionPool) -> AsyncIterator[AsyncConnection]:
    """Acquire a connection for one command; the transaction ends when the block exits."""

    async with pool.connection() as conn:
        yield conn
