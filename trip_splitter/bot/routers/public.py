from __future__ import annotations

import html

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from trip_splitter.bot.keyboards import close_keyboard, settlements_keyboard
from trip_splitter.bot.text import render_balances, render_payments, render_settlements
from trip_splitter.bot.utils import reply_expiring, require_group, safe_delete_message
from trip_splitter.db.models import Member, Trip
from trip_splitter.services.expenses import compute_trip_balances, compute_trip_settlements, list_settlement_payments
from trip_splitter.services.members import MemberInUseError, list_members, remove_member

router = Router(name=__name__)


@router.message(Command("balance"))
async def balance_cmd(message: Message, bot: Bot, session: AsyncSession, trip: Trip) -> None:
    if not require_group(message):
        return
    await safe_delete_message(bot, chat_id=message.chat.id, message_id=message.message_id)

    balances = await compute_trip_balances(session, trip_id=trip.id)
    await reply_expiring(
        message,
        bot,
        render_balances(balances, trip.currency),
        reply_markup=close_keyboard(initiator_user_id=message.from_user.id),
    )


@router.message(Command("settle"))
async def settle_cmd(message: Message, bot: Bot, session: AsyncSession, trip: Trip) -> None:
    if not require_group(message):
        return
    await safe_delete_message(bot, chat_id=message.chat.id, message_id=message.message_id)

    settlements = await compute_trip_settlements(session, trip_id=trip.id)
    await reply_expiring(
        message,
        bot,
        render_settlements(settlements, trip.currency),
        reply_markup=settlements_keyboard(initiator_user_id=message.from_user.id, settlements=settlements),
    )


@router.message(Command("members"))
async def members_cmd(message: Message, bot: Bot, session: AsyncSession, trip: Trip) -> None:
    if not require_group(message):
        return
    await safe_delete_message(bot, chat_id=message.chat.id, message_id=message.message_id)

    members = await list_members(session, trip_id=trip.id)
    lines = [html.escape(m.name) + (f" (@{m.username})" if m.username else "") for m in members[:50]]
    await reply_expiring(
        message,
        bot,
        "<b>Members</b>\n" + ("\n".join(lines) if lines else "No members yet."),
        reply_markup=close_keyboard(initiator_user_id=message.from_user.id),
    )


@router.message(Command("leave"))
async def leave_cmd(message: Message, bot: Bot, session: AsyncSession, trip: Trip, member: Member) -> None:
    if not require_group(message):
        return
    await safe_delete_message(bot, chat_id=message.chat.id, message_id=message.message_id)

    try:
        await remove_member(session, trip_id=trip.id, member_id=member.id)
    except MemberInUseError as e:
        await reply_expiring(message, bot, html.escape(str(e)))
        return
    await reply_expiring(message, bot, f"{html.escape(member.name)} left the trip.")


@router.message(Command("payments"))
async def payments_cmd(message: Message, bot: Bot, session: AsyncSession, trip: Trip) -> None:
    if not require_group(message):
        return
    await safe_delete_message(bot, chat_id=message.chat.id, message_id=message.message_id)

    payments = await list_settlement_payments(session, trip_id=trip.id)
    members = await list_members(session, trip_id=trip.id)
    await reply_expiring(
        message,
        bot,
        render_payments(payments, {m.id: m for m in members}, trip.currency),
        reply_markup=close_keyboard(initiator_user_id=message.from_user.id),
    )
