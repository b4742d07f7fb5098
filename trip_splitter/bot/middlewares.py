from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trip_splitter.config import settings
from trip_splitter.services.members import ensure_trip, upsert_member


def is_command(text: Optional[str]) -> bool:
    return bool(text) and text.startswith("/") and len(text) > 1


class DbSessionMiddleware(BaseMiddleware):
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        super().__init__()
        self._sessionmaker = sessionmaker

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        async with self._sessionmaker() as session:
            try:
                data["session"] = session
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise


class UpsertTripMemberMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        session: AsyncSession = data["session"]

        tg_chat = None
        tg_user = None
        sender_chat = None

        if isinstance(event, Message):
            tg_chat = event.chat
            tg_user = event.from_user
            sender_chat = event.sender_chat
        elif isinstance(event, CallbackQuery) and event.message:
            tg_chat = event.message.chat
            tg_user = event.from_user
            sender_chat = event.message.sender_chat

        # Do NOT auto-add anonymous admins, channels, sender_chat messages.
        if tg_chat is None or tg_user is None or sender_chat is not None:
            return await handler(event, data)
        if tg_user.is_bot:
            return await handler(event, data)

        trip = await ensure_trip(
            session,
            tg_chat_id=tg_chat.id,
            title=tg_chat.title,
            currency=settings.default_currency,
        )
        name = tg_user.first_name or (f"@{tg_user.username}" if tg_user.username else str(tg_user.id))
        # Only commands add new members; plain chat and buttons never re-add someone who left.
        member = await upsert_member(
            session,
            trip=trip,
            tg_user_id=tg_user.id,
            name=name,
            username=tg_user.username,
            create=isinstance(event, Message) and is_command(event.text),
        )
        data["trip"] = trip
        if member is not None:
            data["member"] = member
        return await handler(event, data)
