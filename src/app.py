"""Application composition root.

This module wires together configuration, the DB pool, and the per-chat pending clarifications for
the bot runtime.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field

from psycopg_pool import AsyncConnectionPool

from src.config.settings import Settings
from src.db.pool import create_pool
from src.pipeline.result import PendingCommand


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    pool: AsyncConnectionPool
    # Chat id -> command waiting for the user to pick a person.
    pending: dict[int, PendingCommand] = field(default_factory=dict)

    def today(self) -> dt.date:
        """Today's date in the configured timezone."""

        return dt.datetime.now(self.settings.tz).date()


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        The returned DB pool is not opened. Call `await app.pool.open()` at startup.
    """

    pool = create_pool(settings.database_url, max_size=10)
    return App(settings=settings, pool=pool)
