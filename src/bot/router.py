"""Bot router composition."""

from __future__ import annotations

from aiogram import F, Router

from src.bot.handlers import handle_message

router = Router(name="lessons")
# Voice notes arrive already transcribed as text; anything else is ignored.
router.message.register(handle_message, F.text)
