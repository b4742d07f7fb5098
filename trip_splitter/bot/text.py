from __future__ import annotations

import html
from collections.abc import Mapping

from trip_splitter.db.models import Expense, Member
from trip_splitter.services.ledger import BalanceEntry, EPSILON, Settlement

# Telegram rejects messages longer than this.
MAX_MESSAGE_LEN = 4096


def _esc(s: str) -> str:
    return html.escape(s, quote=False)


def _pre_block(title: str, lines: list[str], footer: str = "") -> str:
    """``<b>title</b>`` plus escaped lines in a <pre> block, dropping lines until it fits in one message."""
    head = f"<b>{_esc(title)}</b>\n<pre>"
    tail = "</pre>" + footer
    body = [_esc(line) for line in lines]
    dropped = 0
    while body and len(head) + len("\n".join(body)) + len(tail) > MAX_MESSAGE_LEN:
        body.pop()
        dropped += 1
        marker = f"… and {dropped} more"
        if len(head) + len("\n".join(body + [marker])) + len(tail) <= MAX_MESSAGE_LEN:
            body.append(marker)
            break
    return head + "\n".join(body) + tail


def format_amount(amount: float, currency: str) -> str:
    return f"{amount:.2f} {currency}"


def format_balance(amount: float, currency: str) -> str:
    if abs(amount) < EPSILON:
        return format_amount(0.0, currency)
    sign = "+" if amount > 0 else "-"
    return f"{sign}{format_amount(abs(amount), currency)}"


def render_balances(balances: list[BalanceEntry], currency: str) -> str:
    lines: list[str] = []
    for b in balances[:30]:
        if b.balance > EPSILON:
            lines.append(f"{b.name}: {format_balance(b.balance, currency)} (is owed)")
        elif b.balance < -EPSILON:
            lines.append(f"{b.name}: {format_balance(b.balance, currency)} (owes)")
        else:
            lines.append(f"{b.name}: settled")
    if not lines:
        lines = ["No members yet."]
    return _pre_block("Balances", lines)


def render_settlements(settlements: list[Settlement], currency: str) -> str:
    if not settlements:
        return "<b>Suggested payments</b>\nEveryone is settled up."
    lines = [f"{s.from_name} → {s.to_name}: {format_amount(s.amount, currency)}" for s in settlements[:30]]
    return _pre_block(
        "Suggested payments",
        lines,
        "\n<i>Recording a payment adds a \"Settlement Payment\" expense.</i>",
    )


def render_payments(payments: list[Expense], members_by_id: Mapping[int, Member], currency: str) -> str:
    """Payment log; each payment is paid by the debtor and owed in full by the creditor."""
    if not payments:
        return "<b>Recorded payments</b>\nNo payments recorded yet."

    def _name(member_id: int) -> str:
        m = members_by_id.get(member_id)
        return m.name if m else f"#{member_id}"

    lines = []
    for p in payments[:30]:
        receiver = _name(p.splits[0].member_id) if p.splits else "?"
        lines.append(f"{_name(p.paid_by_member_id)} → {receiver}: {format_amount(p.amount, currency)}")
    return _pre_block("Recorded payments", lines)
