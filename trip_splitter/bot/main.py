from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramUnauthorizedError
from aiogram.fsm.storage.memory import MemoryStorage

from trip_splitter.bot.middlewares import DbSessionMiddleware, UpsertTripMemberMiddleware
from trip_splitter.bot.routers import all_routers
from trip_splitter.config import settings
from trip_splitter.db.session import SessionMaker
from trip_splitter.logging import configure_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    configure_logging(settings.log_level)

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    try:
        try:
            me = await bot.get_me()
        except TelegramUnauthorizedError as e:
            logger.error("Telegram Unauthorized. Check BOT_TOKEN in .env (BotFather token). %s", e)
            raise

        dp = Dispatcher(storage=MemoryStorage())

        dp.update.middleware(DbSessionMiddleware(SessionMaker))
        dp.message.middleware(UpsertTripMemberMiddleware())
        dp.callback_query.middleware(UpsertTripMemberMiddleware())

        for r in all_routers():
            dp.include_router(r)

        logger.info("Starting bot as @%s", me.username)
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
