from __future__ import annotations

from typing import Optional

from aiogram import Router
from aiogram.types import CallbackQuery
from sqlalchemy.ext.asyncio import AsyncSession

from trip_splitter.bot.callbacks import CloseCb, RecordSettlementCb
from trip_splitter.bot.text import format_amount
from trip_splitter.bot.utils import safe_delete_message
from trip_splitter.db.models import Member, Trip
from trip_splitter.services.expenses import settle_transfer
from trip_splitter.services.members import get_member_by_id

router = Router(name=__name__)


@router.callback_query(CloseCb.filter())
async def close_cb(callback: CallbackQuery, callback_data: CloseCb) -> None:
    if callback.from_user.id != callback_data.initiator:
        await callback.answer("This button is not for you.", show_alert=True)
        return
    if callback.message:
        await safe_delete_message(callback.bot, chat_id=callback.message.chat.id, message_id=callback.message.message_id)
    await callback.answer()


@router.callback_query(RecordSettlementCb.filter())
async def record_settlement_cb(
    callback: CallbackQuery,
    callback_data: RecordSettlementCb,
    session: AsyncSession,
    trip: Trip,
    member: Optional[Member] = None,
) -> None:
    # Only the person who owes can record the payment.
    if member is None or member.id != callback_data.from_id:
        await callback.answer("Only the person who owes can record this payment.", show_alert=True)
        return
    receiver = await get_member_by_id(session, trip_id=trip.id, member_id=callback_data.to_id)
    if receiver is None:
        await callback.answer("Recipient is no longer in this trip.", show_alert=True)
        return

    try:
        payment = await settle_transfer(
            session,
            trip_id=trip.id,
            from_member_id=member.id,
            to_member_id=receiver.id,
            amount_cents=callback_data.amount_cents,
        )
    except ValueError as e:
        await callback.answer(str(e), show_alert=True)
        return

    if callback.message:
        await safe_delete_message(callback.bot, chat_id=callback.message.chat.id, message_id=callback.message.message_id)
    await callback.answer(
        f"Recorded: {member.name} paid {receiver.name} {format_amount(payment.amount, trip.currency)}.",
        show_alert=True,
    )
