from __future__ import annotations

from aiogram import Router

from trip_splitter.bot.routers.common_callbacks import router as common_callbacks_router
from trip_splitter.bot.routers.expense import router as expense_router
from trip_splitter.bot.routers.public import router as public_router


def all_routers() -> list[Router]:
    return [
        common_callbacks_router,
        expense_router,
        public_router,
    ]
