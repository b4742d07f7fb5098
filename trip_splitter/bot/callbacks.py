from __future__ import annotations

from aiogram.filters.callback_data import CallbackData


class CloseCb(CallbackData, prefix="close"):
    initiator: int


class RecordSettlementCb(CallbackData, prefix="rec"):
    from_id: int  # debtor member id
    to_id: int  # creditor member id
    amount_cents: int
