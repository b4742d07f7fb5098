from __future__ import annotations

import html

from aiogram import Bot, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from trip_splitter.bot.parsing import parse_expense_args
from trip_splitter.bot.text import format_amount
from trip_splitter.bot.utils import reply_expiring, require_group, safe_delete_message
from trip_splitter.db.models import Member, Trip
from trip_splitter.services.expenses import create_expense
from trip_splitter.services.ledger import SplitDetail, SplitType
from trip_splitter.services.members import get_members_by_usernames

router = Router(name=__name__)


@router.message(Command("expense"))
async def expense_cmd(
    message: Message,
    command: CommandObject,
    bot: Bot,
    session: AsyncSession,
    trip: Trip,
    member: Member,
) -> None:
    if not require_group(message):
        return
    await safe_delete_message(bot, chat_id=message.chat.id, message_id=message.message_id)

    try:
        args = parse_expense_args(command.args or "")
        participants = await get_members_by_usernames(session, trip_id=trip.id, usernames=args.usernames)
        # No mentions: split among everyone in the trip when settlements are computed.
        await create_expense(
            session,
            trip_id=trip.id,
            amount=args.amount,
            paid_by_member_id=member.id,
            split_type=SplitType.EQUALLY,
            split_details=[SplitDetail(member_id=str(p.id)) for p in participants],
            description=args.note,
        )
    except ValueError as e:
        await reply_expiring(message, bot, html.escape(str(e)))
        return

    among = ", ".join(html.escape(p.name) for p in participants) if participants else "everyone"
    note = f" for <i>{html.escape(args.note)}</i>" if args.note else ""
    await reply_expiring(
        message,
        bot,
        f"<b>{html.escape(member.name)}</b> paid {format_amount(args.amount, trip.currency)}{note}, split among {among}.",
    )
