"""Telegram bot entrypoint: long-polls updates and routes text messages to the command pipeline."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties

from src.app import App, create_app
from src.bot.router import router
from src.config.logging import configure_logging
from src.config.settings import load_settings

logger = logging.getLogger(__name__)


def build_dispatcher() -> Dispatcher:
    dp = Dispatcher()
    dp.include_router(router)
    return dp


async def run_polling(app: App, bot: Bot, dp: Dispatcher) -> None:
    """Poll until cancelled, then release the HTTP session and the DB pool."""

    try:
        await dp.start_polling(bot, app=app, allowed_updates=dp.resolve_used_update_types())
    finally:
        # Parked clarifications live in memory only and are lost on restart.
        logger.info("shutting down pending_clarifications=%d", len(app.pending))
        await bot.session.close()
        await app.pool.close()


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    app = create_app(settings)
    await app.pool.open(wait=True)
    logger.info("starting timezone=%s dry_run=%s", settings.default_timezone, settings.dry_run)

    # Replies are plain text; student names must not be parsed as markup.
    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=None))
    await run_polling(app, bot, build_dispatcher())


if __name__ == "__main__":
    asyncio.run(main())
