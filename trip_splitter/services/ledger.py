from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Balances and transfers within this distance of zero are treated as settled.
EPSILON = 0.001


class SplitType(str, enum.Enum):
    EQUALLY = "equally"
    BY_AMOUNT = "byAmount"
    BY_PERCENTAGE = "byPercentage"


@dataclass(frozen=True)
class Member:
    id: str
    name: str


@dataclass(frozen=True)
class SplitDetail:
    member_id: str
    amount: Optional[float] = None
    percentage: Optional[float] = None


@dataclass(frozen=True)
class Expense:
    id: str
    amount: float
    paid_by_id: str
    # Stored rows may carry split types this version does not know about.
    split_type: Union[SplitType, str]
    split_details: Sequence[SplitDetail] = field(default_factory=tuple)
    description: str = ""
    category: Optional[str] = None


@dataclass(frozen=True)
class BalanceEntry:
    member_id: str
    name: str
    balance: float  # positive is owed, negative owes


@dataclass(frozen=True)
class Settlement:
    from_id: str  # debtor
    from_name: str
    to_id: str  # creditor
    to_name: str
    amount: float


def coerce_split_type(value: Union[SplitType, str, None]) -> Optional[SplitType]:
    if isinstance(value, SplitType):
        return value
    try:
        return SplitType(value)
    except ValueError:
        return None


def _subtract(balances: dict[str, float], member_id: str, share: float) -> None:
    if member_id in balances:
        balances[member_id] -= share


def _split_equally(balances: dict[str, float], amount: float, pool: list[str]) -> None:
    if not pool:
        return
    share = amount / len(pool)
    for member_id in pool:
        _subtract(balances, member_id, share)


def compute_balances(expenses: Iterable[Expense], members: Sequence[Member]) -> dict[str, float]:
    """
    Net balance per member id, in roster order.

    The payer is credited with the full amount and every participant is
    debited their share. References to ids outside ``members`` are skipped.

    An EQUALLY expense with no split details, and any expense whose split type
    is unknown, is shared by the members passed in *now*, so removing or adding
    a member changes the result for expenses logged earlier.
    """
    balances: dict[str, float] = {m.id: 0.0 for m in members}
    all_ids = list(balances)

    for expense in expenses:
        amount = float(expense.amount)
        if expense.paid_by_id in balances:
            balances[expense.paid_by_id] += amount

        split_type = coerce_split_type(expense.split_type)
        details = list(expense.split_details or ())

        if split_type is SplitType.EQUALLY:
            pool = [d.member_id for d in details] if details else all_ids
            _split_equally(balances, amount, pool)
        elif split_type is SplitType.BY_AMOUNT:
            for d in details:
                if d.amount is not None:
                    _subtract(balances, d.member_id, float(d.amount))
        elif split_type is SplitType.BY_PERCENTAGE:
            for d in details:
                if d.percentage is not None:
                    _subtract(balances, d.member_id, amount * float(d.percentage) / 100)
        else:
            logger.debug(
                "Expense %s has unknown split type %r; splitting equally among all members",
                expense.id,
                expense.split_type,
            )
            _split_equally(balances, amount, all_ids)

    return balances


def balance_entries(balances: dict[str, float], members: Sequence[Member]) -> list[BalanceEntry]:
    names = {m.id: m.name for m in members}
    return [BalanceEntry(member_id=mid, name=names.get(mid, mid), balance=bal) for mid, bal in balances.items()]


def compute_settlement(balances: dict[str, float], members: Sequence[Member]) -> list[Settlement]:
    names = {m.id: m.name for m in members}
    creditors: list[list] = []  # [member_id, to_receive]
    debtors: list[list] = []  # [member_id, to_pay]

    for mid, bal in balances.items():
        if mid not in names:
            continue
        if bal < -EPSILON:
            debtors.append([mid, -bal])
        elif bal > EPSILON:
            creditors.append([mid, bal])

    # sort() is stable: equal amounts keep roster order.
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    out: list[Settlement] = []
    i = 0
    j = 0
    while i < len(debtors) and j < len(creditors):
        d_id, owe = debtors[i]
        c_id, recv = creditors[j]
        amt = min(owe, recv)
        if amt > EPSILON:
            out.append(
                Settlement(
                    from_id=d_id,
                    from_name=names[d_id],
                    to_id=c_id,
                    to_name=names[c_id],
                    amount=amt,
                )
            )
        owe -= amt
        recv -= amt
        debtors[i][1] = owe
        creditors[j][1] = recv
        if owe < EPSILON:
            i += 1
        if recv < EPSILON:
            j += 1
    return out


def calculate_settlements(expenses: Iterable[Expense], members: Sequence[Member]) -> list[Settlement]:
    """Reduce the trip's expenses to the transfers that settle every balance, largest first."""
    if not members:
        return []
    return compute_settlement(compute_balances(expenses, members), members)
