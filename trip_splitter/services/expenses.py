from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from trip_splitter.db.models import Expense, ExpenseSplit, Member
from trip_splitter.services import ledger
from trip_splitter.services.ledger import SplitDetail, SplitType

logger = logging.getLogger(__name__)

SETTLEMENT_CATEGORY = "Settlement Payment"

# Shares entered by hand are compared with this tolerance (one cent / 0.01%).
SHARE_TOLERANCE = 0.01


class InvalidSplitError(ValueError):
    pass


def _off_by(total: float, expected: float) -> float:
    # Rounded so that 3 x 33.33 against 100 counts as exactly one cent off.
    return round(abs(total - expected), 2)


def validate_split(
    *,
    amount: float,
    split_type: Union[SplitType, str],
    split_details: Sequence[SplitDetail] = (),
) -> SplitType:
    """
    Check an expense before it is stored.

    The settlement engine trusts its input, so shares that do not add up
    are rejected here instead. Returns the parsed split type.
    """
    if amount is None or amount <= 0:
        raise InvalidSplitError("Amount must be a positive number.")

    st = ledger.coerce_split_type(split_type)
    if st is None:
        raise InvalidSplitError(f"Unknown split type: {split_type!r}.")

    if st is SplitType.EQUALLY:
        return st

    if not split_details:
        raise InvalidSplitError("At least one member share is required for this split type.")

    if st is SplitType.BY_AMOUNT:
        if any(d.amount is None or d.amount < 0 for d in split_details):
            raise InvalidSplitError("Every share needs a non-negative amount.")
        total = sum(float(d.amount) for d in split_details)
        if _off_by(total, amount) > SHARE_TOLERANCE:
            raise InvalidSplitError(f"Shares sum to {total:.2f}, expected {amount:.2f}.")
        return st

    if any(d.percentage is None or d.percentage < 0 for d in split_details):
        raise InvalidSplitError("Every share needs a non-negative percentage.")
    total = sum(float(d.percentage) for d in split_details)
    if _off_by(total, 100) > SHARE_TOLERANCE:
        raise InvalidSplitError(f"Percentages sum to {total:.2f}%, expected 100%.")
    return st


async def create_expense(
    session: AsyncSession,
    *,
    trip_id: int,
    amount: float,
    paid_by_member_id: int,
    split_type: Union[SplitType, str],
    split_details: Sequence[SplitDetail] = (),
    description: str = "",
    category: Optional[str] = None,
) -> Expense:
    st = validate_split(amount=amount, split_type=split_type, split_details=split_details)

    try:
        split_member_ids = [int(d.member_id) for d in split_details]
    except ValueError:
        raise ValueError("Every selected member must belong to this trip.") from None
    involved = set(split_member_ids) | {int(paid_by_member_id)}
    existing = (
        await session.scalars(select(Member.id).where(Member.trip_id == trip_id, Member.id.in_(involved)))
    ).all()
    if len(existing) != len(involved):
        raise ValueError("Every selected member must belong to this trip.")

    expense = Expense(
        trip_id=trip_id,
        amount=float(amount),
        paid_by_member_id=int(paid_by_member_id),
        split_type=st.value,
        description=(description or "").strip(),
        category=category,
        splits=[
            ExpenseSplit(
                member_id=mid,
                position=pos,
                amount=None if d.amount is None else float(d.amount),
                percentage=None if d.percentage is None else float(d.percentage),
            )
            for pos, (mid, d) in enumerate(zip(split_member_ids, split_details))
        ],
    )
    session.add(expense)
    await session.flush()
    logger.info("Created expense id=%s amount=%.2f split=%s in trip id=%s", expense.id, expense.amount, st.value, trip_id)
    return expense


async def list_expenses(session: AsyncSession, *, trip_id: int, limit: Optional[int] = None) -> list[Expense]:
    stmt = select(Expense).options(selectinload(Expense.splits)).where(Expense.trip_id == trip_id)
    if limit is not None:
        stmt = stmt.order_by(Expense.id.desc()).limit(limit)
    else:
        stmt = stmt.order_by(Expense.id.asc())
    res = await session.scalars(stmt)
    return list(res)


def to_ledger_member(m: Member) -> ledger.Member:
    return ledger.Member(id=str(m.id), name=m.name)


def to_ledger_expense(e: Expense) -> ledger.Expense:
    return ledger.Expense(
        id=str(e.id),
        amount=e.amount,
        paid_by_id=str(e.paid_by_member_id),
        split_type=e.split_type,
        split_details=tuple(
            SplitDetail(member_id=str(s.member_id), amount=s.amount, percentage=s.percentage) for s in e.splits
        ),
        description=e.description,
        category=e.category,
    )


async def load_snapshot(session: AsyncSession, *, trip_id: int) -> tuple[list[ledger.Expense], list[ledger.Member]]:
    members = (
        await session.scalars(select(Member).where(Member.trip_id == trip_id).order_by(Member.id.asc()))
    ).all()
    expenses = await list_expenses(session, trip_id=trip_id)
    return [to_ledger_expense(e) for e in expenses], [to_ledger_member(m) for m in members]


async def compute_trip_balances(session: AsyncSession, *, trip_id: int) -> list[ledger.BalanceEntry]:
    expenses, members = await load_snapshot(session, trip_id=trip_id)
    return ledger.balance_entries(ledger.compute_balances(expenses, members), members)


async def compute_trip_settlements(session: AsyncSession, *, trip_id: int) -> list[ledger.Settlement]:
    expenses, members = await load_snapshot(session, trip_id=trip_id)
    return ledger.calculate_settlements(expenses, members)


async def record_settlement_payment(session: AsyncSession, *, trip_id: int, settlement: ledger.Settlement) -> Expense:
    """Store a debtor-to-creditor payment as a BY_AMOUNT expense owed entirely by the creditor."""
    payer = await session.scalar(select(Member).where(Member.trip_id == trip_id, Member.id == int(settlement.from_id)))
    receiver = await session.scalar(select(Member).where(Member.trip_id == trip_id, Member.id == int(settlement.to_id)))
    if payer is None or receiver is None:
        raise ValueError("Payer or recipient is not a member of this trip.")
    if payer.id == receiver.id:
        raise ValueError("Payer and recipient must be different members.")

    expense = await create_expense(
        session,
        trip_id=trip_id,
        amount=settlement.amount,
        paid_by_member_id=payer.id,
        split_type=SplitType.BY_AMOUNT,
        split_details=[SplitDetail(member_id=str(receiver.id), amount=settlement.amount)],
        description=f"Settlement: {payer.name} to {receiver.name}",
        category=SETTLEMENT_CATEGORY,
    )
    logger.info("Recorded settlement payment %s -> %s (%.2f) in trip id=%s", payer.id, receiver.id, settlement.amount, trip_id)
    return expense


async def list_settlement_payments(session: AsyncSession, *, trip_id: int) -> list[Expense]:
    res = await session.scalars(
        select(Expense)
        .options(selectinload(Expense.splits))
        .where(Expense.trip_id == trip_id, Expense.category == SETTLEMENT_CATEGORY)
        .order_by(Expense.id.desc())
    )
    return list(res)


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


async def settle_transfer(
    session: AsyncSession,
    *,
    trip_id: int,
    from_member_id: int,
    to_member_id: int,
    amount_cents: int,
) -> Expense:
    """
    Record the live plan's transfer from one member to another.

    ``amount_cents`` is what the debtor was shown; the stored payment uses the
    engine's unrounded amount so the pair drops out of the next plan entirely.
    Raises ValueError when the plan no longer holds that transfer.
    """
    settlements = await compute_trip_settlements(session, trip_id=trip_id)
    match = next(
        (s for s in settlements if s.from_id == str(from_member_id) and s.to_id == str(to_member_id)),
        None,
    )
    if match is None:
        raise ValueError("This payment is no longer needed.")
    if to_cents(match.amount) != amount_cents:
        raise ValueError("Balances changed since this list was shown. Run /settle again.")
    return await record_settlement_payment(session, trip_id=trip_id, settlement=match)
