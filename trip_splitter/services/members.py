from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from trip_splitter.db.models import Expense, ExpenseSplit, Member, Trip

logger = logging.getLogger(__name__)


class MemberInUseError(ValueError):
    pass


async def ensure_trip(
    session: AsyncSession,
    *,
    tg_chat_id: int,
    title: Optional[str] = None,
    currency: str = "USD",
) -> Trip:
    trip = await session.scalar(select(Trip).where(Trip.tg_chat_id == tg_chat_id))
    if trip is None:
        trip = Trip(tg_chat_id=tg_chat_id, title=title, currency=currency)
        session.add(trip)
        await session.flush()
        logger.info("Created trip id=%s for tg_chat_id=%s", trip.id, tg_chat_id)
    elif title and trip.title != title:
        trip.title = title
        await session.flush()
    return trip


async def add_member(
    session: AsyncSession,
    *,
    trip_id: int,
    name: str,
    tg_user_id: Optional[int] = None,
    username: Optional[str] = None,
) -> Member:
    name = (name or "").strip()
    if not name:
        raise ValueError("Member name must not be empty.")
    m = Member(trip_id=trip_id, name=name, tg_user_id=tg_user_id, username=username.lower() if username else None)
    session.add(m)
    await session.flush()
    logger.info("Added member id=%s (%s) to trip id=%s", m.id, name, trip_id)
    return m


async def upsert_member(
    session: AsyncSession,
    *,
    trip: Trip,
    tg_user_id: int,
    name: str,
    username: Optional[str] = None,
    create: bool = True,
) -> Optional[Member]:
    """Refresh the member behind a Telegram user; with ``create=False`` unknown users stay out."""
    m = await get_member_by_tg_user_id(session, trip_id=trip.id, tg_user_id=tg_user_id)
    if m is None:
        if not create:
            return None
        return await add_member(session, trip_id=trip.id, name=name, tg_user_id=tg_user_id, username=username)
    name = (name or "").strip()
    username = username.lower() if username else None
    if (name and m.name != name) or m.username != username:
        m.name = name or m.name
        m.username = username
        await session.flush()
    return m


async def list_members(session: AsyncSession, *, trip_id: int) -> list[Member]:
    res = await session.scalars(select(Member).where(Member.trip_id == trip_id).order_by(Member.id.asc()))
    return list(res)


async def get_member_by_id(session: AsyncSession, *, trip_id: int, member_id: int) -> Optional[Member]:
    return await session.scalar(select(Member).where(Member.trip_id == trip_id, Member.id == member_id))


async def get_member_by_tg_user_id(session: AsyncSession, *, trip_id: int, tg_user_id: int) -> Optional[Member]:
    return await session.scalar(select(Member).where(Member.trip_id == trip_id, Member.tg_user_id == tg_user_id))


async def get_members_by_usernames(session: AsyncSession, *, trip_id: int, usernames: list[str]) -> list[Member]:
    """Members matching the given usernames, in the order given. Unknown usernames raise ValueError."""
    wanted = [u.lower().lstrip("@") for u in usernames]
    res = await session.scalars(select(Member).where(Member.trip_id == trip_id, Member.username.in_(wanted)))
    by_username = {m.username: m for m in res}
    missing = [u for u in wanted if u not in by_username]
    if missing:
        raise ValueError("Not in this trip yet: " + ", ".join(f"@{u}" for u in missing))
    return [by_username[u] for u in wanted]


async def is_member_referenced(session: AsyncSession, *, trip_id: int, member_id: int) -> bool:
    ref = await session.scalar(
        select(Expense.id)
        .outerjoin(ExpenseSplit, ExpenseSplit.expense_id == Expense.id)
        .where(
            Expense.trip_id == trip_id,
            or_(Expense.paid_by_member_id == member_id, ExpenseSplit.member_id == member_id),
        )
        .limit(1)
    )
    return ref is not None


async def remove_member(session: AsyncSession, *, trip_id: int, member_id: int) -> bool:
    m = await get_member_by_id(session, trip_id=trip_id, member_id=member_id)
    if m is None:
        return False
    if await is_member_referenced(session, trip_id=trip_id, member_id=member_id):
        raise MemberInUseError(f"{m.name} still appears in expenses and cannot be removed.")
    await session.delete(m)
    await session.flush()
    logger.info("Removed member id=%s from trip id=%s", member_id, trip_id)
    return True
