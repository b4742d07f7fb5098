from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from trip_splitter.bot.callbacks import CloseCb, RecordSettlementCb
from trip_splitter.services.expenses import to_cents
from trip_splitter.services.ledger import Settlement


def close_keyboard(*, initiator_user_id: int, text: str = "Close") -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.row(
        InlineKeyboardButton(text=text, callback_data=CloseCb(initiator=initiator_user_id).pack()),
        width=1,
    )
    return kb.as_markup()


def settlements_keyboard(*, initiator_user_id: int, settlements: list[Settlement]) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for s in settlements[:10]:
        cents = to_cents(s.amount)
        if cents <= 0:
            continue
        kb.row(
            InlineKeyboardButton(
                text=f"✅ {s.from_name} paid {s.to_name} {cents / 100:.2f}",
                callback_data=RecordSettlementCb(from_id=int(s.from_id), to_id=int(s.to_id), amount_cents=cents).pack(),
            ),
            width=1,
        )
    kb.row(
        InlineKeyboardButton(text="Close", callback_data=CloseCb(initiator=initiator_user_id).pack()),
        width=1,
    )
    return kb.as_markup()
