"""Roster database connections for the one-shot tools (`migrate`, `load_json`).

The bot itself goes through the async pool in `src.db.pool`; both paths pin the session to UTC so
the `created_at`/`updated_at` audit columns compare across hosts.
"""

from __future__ import annotations

import os

import psycopg
from dotenv import load_dotenv

UTC_SESSION_SQL = "SET TIME ZONE 'UTC'"


def resolve_database_url(database_url: str | None = None) -> str:
    """Return `database_url`, falling back to `DATABASE_URL` from `.env` or the environment.

    Raises:
        RuntimeError: If no URL is configured.
    """

    if database_url:
        return database_url
    load_dotenv(".env")
    configured = os.getenv("DATABASE_URL")
    if not configured:
        raise RuntimeError("DATABASE_URL is required to reach the roster database (set it in .env)")
    return configured


def open_roster_connection(database_url: str | None = None) -> psycopg.Connection:
    """Open a synchronous connection to the roster database with the session pinned to UTC."""

    conn = psycopg.connect(resolve_database_url(database_url))
    conn.execute(UTC_SESSION_SQL, prepare=False)
    return conn
