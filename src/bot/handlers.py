"""aiogram message handlers.

Every incoming message produces exactly one reply: the command result's human message, followed by
numbered options when the bot needs the user to choose. Replying with an option number to a name
question resumes the parked command. Internal errors are logged and answered with a generic message.
"""

from __future__ import annotations

import logging
import re

from aiogram.types import Message

from src.app import App
from src.db.pool import get_conn
from src.db.store import PostgresLessonStore
from src.pipeline.handler import CommandContext, CommandOptions, handle_command, resume_pending_command
from src.pipeline.result import CommandResult
from src.planner.builder import HELP_MESSAGE

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Nothing was changed."

_CHOICE_RE = re.compile(r"^\s*(\d{1,2})\s*\.?\s*$")


def _is_command_text(text: str) -> bool:
    return text.lstrip().startswith("/")


def format_reply(result: CommandResult) -> str:
    """Render a result as one plain-text message."""

    lines = [result.human_message]
    for idx, option in enumerate(result.clarification_options or [], start=1):
        lines.append(f"{idx}. {option}")
    return "\n".join(lines)


def _choice_index(text: str) -> int | None:
    match = _CHOICE_RE.fullmatch(text)
    return int(match.group(1)) if match else None


async def handle_message(message: Message, app: App) -> None:
    """Run one Telegram message through the command pipeline and reply once."""

    reply = GENERIC_ERROR_MESSAGE

    # noinspection PyBroadException
    try:
        raw_text = (message.text or message.caption or "")
        if _is_command_text(raw_text):
            await message.answer(HELP_MESSAGE)
            return

        chat_id = message.chat.id
        owner_id = str(message.from_user.id if message.from_user else chat_id)
        options = CommandOptions(dry_run=app.settings.dry_run)

        async with get_conn(app.pool) as conn:
            store = await PostgresLessonStore.load(conn, owner_id)

            pending = app.pending.pop(chat_id, None)
            choice = _choice_index(raw_text) if pending else None
            if pending is not None and choice is not None:
                person_id = (
                    pending.candidate_ids[choice - 1]
                    if 1 <= choice <= len(pending.candidate_ids)
                    else ""
                )
                result = await resume_pending_command(pending, person_id, store, options)
            else:
                context = CommandContext(
                    selected_date=app.today(),
                    user_id=owner_id,
                    timezone=app.settings.default_timezone,
                )
                result = await handle_command(raw_text, context, store, options)

        if result.pending_command is not None:
            app.pending[chat_id] = result.pending_command
        reply = format_reply(result)
    except Exception:
        # Handler boundary: any internal error gets a generic reply without leaking details.
        logger.exception("handler failed")

    await message.answer(reply)
