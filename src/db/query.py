"""Safe DB query helpers.

These helpers never interpolate user values into SQL; all values are passed via `params`. DB errors
are not swallowed (caller decides how to handle them).
"""

from __future__ import annotations

from typing import Any, LiteralString, cast

from psycopg import AsyncConnection

from src.sql.builder import BuiltQuery


async def fetch_all(conn: AsyncConnection, query: BuiltQuery) -> list[tuple[Any, ...]]:
    """Execute a query and return all rows as tuples."""

    async with conn.cursor() as cur:
        await cur.execute(cast(LiteralString, query.sql), query.params)
        return list(await cur.fetchall())


async def fetch_one(conn: AsyncConnection, query: BuiltQuery) -> tuple[Any, ...] | None:
    async with conn.cursor() as cur:
        await cur.execute(cast(LiteralString, query.sql), query.params)
        return await cur.fetchone()


async def execute(conn: AsyncConnection, query: BuiltQuery) -> int:
    """Execute a write and return the number of affected rows."""

    async with conn.cursor() as cur:
        await cur.execute(cast(LiteralString, query.sql), query.params)
        return cur.rowcount
