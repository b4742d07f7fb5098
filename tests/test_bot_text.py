from __future__ import annotations

import pytest

from trip_splitter.bot.callbacks import RecordSettlementCb
from trip_splitter.bot.keyboards import settlements_keyboard, to_cents
from trip_splitter.bot.parsing import parse_amount, parse_expense_args
from trip_splitter.bot.middlewares import is_command
from trip_splitter.bot.text import MAX_MESSAGE_LEN, format_balance, render_balances, render_payments, render_settlements
from trip_splitter.db.models import Expense, ExpenseSplit
from trip_splitter.db.models import Member as DbMember
from trip_splitter.services.ledger import BalanceEntry, Settlement


def _settlement(amount=30.0):
    return Settlement(from_id="2", from_name="Bob", to_id="1", to_name="Alice", amount=amount)


def test_parse_expense_args_with_mentions_and_note():
    args = parse_expense_args("45,50 @Bob dinner @carol at the port @bob")

    assert args.amount == 45.5
    assert args.usernames == ["bob", "carol"]
    assert args.note == "dinner at the port"


def test_parse_expense_args_amount_only():
    args = parse_expense_args("12")

    assert args.amount == 12.0
    assert args.usernames == []
    assert args.note == ""


@pytest.mark.parametrize("text", ["", "   ", "abc", "0", "-3", "nan"])
def test_parse_expense_args_rejects_bad_amounts(text):
    with pytest.raises(ValueError):
        parse_expense_args(text)


def test_parse_amount_accepts_decimal_comma():
    assert parse_amount("3,25") == 3.25


def test_format_balance_signs():
    assert format_balance(12.346, "EUR") == "+12.35 EUR"
    assert format_balance(-5, "EUR") == "-5.00 EUR"
    assert format_balance(0.0004, "EUR") == "0.00 EUR"


def test_render_settlements_lists_transfers():
    text = render_settlements([_settlement()], "USD")

    assert "Bob → Alice: 30.00 USD" in text
    assert "Settlement Payment" in text


def test_render_settlements_when_settled():
    assert "Everyone is settled up." in render_settlements([], "USD")


def test_render_balances_escapes_names():
    balances = [
        BalanceEntry(member_id="1", name="<Alice>", balance=60.0),
        BalanceEntry(member_id="2", name="Bob", balance=-60.0),
        BalanceEntry(member_id="3", name="Carol", balance=0.0),
    ]

    text = render_balances(balances, "USD")

    assert "&lt;Alice&gt;: +60.00 USD (is owed)" in text
    assert "Bob: -60.00 USD (owes)" in text
    assert "Carol: settled" in text


def test_settlement_buttons_carry_cents():
    kb = settlements_keyboard(initiator_user_id=7, settlements=[_settlement(33.333333)])

    record_button = kb.inline_keyboard[0][0]
    data = RecordSettlementCb.unpack(record_button.callback_data)
    assert (data.from_id, data.to_id, data.amount_cents) == (2, 1, 3333)
    # Close button last.
    assert kb.inline_keyboard[-1][0].text == "Close"


def test_to_cents_rounds():
    assert to_cents(19.999) == 2000


def test_long_balances_keep_valid_markup():
    balances = [BalanceEntry(member_id=str(i), name=f"{i:02d}" + "x" * 300, balance=-1.0) for i in range(30)]

    text = render_balances(balances, "USD")

    assert len(text) <= MAX_MESSAGE_LEN
    assert text.startswith("<b>Balances</b>\n<pre>")
    assert text.endswith("</pre>")
    assert text.count("<pre>") == text.count("</pre>") == 1
    assert "more" in text.splitlines()[-1]


def test_long_settlements_keep_footer():
    settlements = [
        Settlement(from_id=str(i), from_name="y" * 300, to_id="0", to_name="Alice", amount=1.0) for i in range(30)
    ]

    text = render_settlements(settlements, "USD")

    assert len(text) <= MAX_MESSAGE_LEN
    assert text.endswith("</i>")
    assert "</pre>" in text


def test_render_payments_names_both_sides():
    members = {1: DbMember(id=1, name="Alice"), 2: DbMember(id=2, name="Bob")}
    payment = Expense(
        id=10,
        amount=30.0,
        paid_by_member_id=2,
        split_type="byAmount",
        splits=[ExpenseSplit(member_id=1, position=0, amount=30.0)],
    )

    text = render_payments([payment], members, "EUR")

    assert "Bob → Alice: 30.00 EUR" in text
    assert "No payments" in render_payments([], members, "EUR")


@pytest.mark.parametrize(
    "text,expected",
    [("/settle", True), ("/expense 10 @bob", True), ("hello", False), ("/", False), ("", False), (None, False)],
)
def test_is_command(text, expected):
    assert is_command(text) is expected
