from __future__ import annotations

import asyncio
from typing import Any

from aiogram import Bot
from aiogram.enums import ChatType, ParseMode
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.types import Message

from trip_splitter.config import settings

# Strong references, otherwise pending deletions can be garbage-collected.
_pending: set[asyncio.Task] = set()


def require_group(message: Message) -> bool:
    return message.chat.type in (ChatType.GROUP, ChatType.SUPERGROUP)


async def safe_delete_message(bot: Bot, *, chat_id: int, message_id: int) -> bool:
    try:
        await bot.delete_message(chat_id=chat_id, message_id=message_id)
        return True
    except (TelegramBadRequest, TelegramForbiddenError):
        return False


def delete_later(bot: Bot, *, chat_id: int, message_id: int, delay_seconds: float) -> None:
    async def _job() -> None:
        await asyncio.sleep(delay_seconds)
        await safe_delete_message(bot, chat_id=chat_id, message_id=message_id)

    task = asyncio.create_task(_job())
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def reply_expiring(message: Message, bot: Bot, text: str, **kwargs: Any) -> Message:
    msg = await message.answer(text, parse_mode=ParseMode.HTML, **kwargs)
    delete_later(bot, chat_id=msg.chat.id, message_id=msg.message_id, delay_seconds=settings.reply_ttl_seconds)
    return msg
