"""Process-wide logging setup shared by the bot, the offline runner and the DB tools."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Library loggers that are chatty at INFO (per-update dispatch, pool growth, locale detection).
_QUIET_LOGGERS = ("aiogram.event", "psycopg.pool", "dateparser")


def configure_logging(level: str | None = None) -> None:
    """Send diagnostics to stderr at `level` (or `LOG_LEVEL`, default INFO).

    stdout stays free for the offline runner's JSON result. Transcripts and replies are never
    logged; the user only ever sees `CommandResult.human_message`.
    """

    log_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT, stream=sys.stderr)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
