from __future__ import annotations

import pytest

from trip_splitter.services.expenses import create_expense
from trip_splitter.services.ledger import SplitDetail, SplitType
from trip_splitter.services.members import (
    MemberInUseError,
    add_member,
    ensure_trip,
    get_member_by_tg_user_id,
    get_members_by_usernames,
    list_members,
    remove_member,
    upsert_member,
)


async def test_ensure_trip_is_idempotent_and_refreshes_title(session):
    first = await ensure_trip(session, tg_chat_id=-1001, title="Old", currency="EUR")
    again = await ensure_trip(session, tg_chat_id=-1001, title="New")

    assert again.id == first.id
    assert again.title == "New"
    assert again.currency == "EUR"


async def test_add_member_strips_and_rejects_blank_names(session, trip):
    m = await add_member(session, trip_id=trip.id, name="  Dana ")
    assert m.name == "Dana"

    with pytest.raises(ValueError):
        await add_member(session, trip_id=trip.id, name="   ")


async def test_upsert_member_updates_display_name(session, trip, trip_members):
    bob = trip_members[1]
    assert bob.username == "bob"

    same = await upsert_member(session, trip=trip, tg_user_id=2, name="Robert", username="robert")

    assert same.id == bob.id
    assert same.name == "Robert"
    assert same.username == "robert"
    assert (await get_member_by_tg_user_id(session, trip_id=trip.id, tg_user_id=2)).name == "Robert"


async def test_upsert_member_creates_newcomers(session, trip, trip_members):
    dana = await upsert_member(session, trip=trip, tg_user_id=4, name="Dana")

    assert [m.name for m in await list_members(session, trip_id=trip.id)] == ["Alice", "Bob", "Carol", "Dana"]
    assert dana.tg_user_id == 4


async def test_members_by_username_keeps_order(session, trip, trip_members):
    alice, bob, _carol = trip_members

    found = await get_members_by_usernames(session, trip_id=trip.id, usernames=["@Bob", "alice"])

    assert [m.id for m in found] == [bob.id, alice.id]


async def test_members_by_username_reports_missing(session, trip, trip_members):
    with pytest.raises(ValueError, match="@zed"):
        await get_members_by_usernames(session, trip_id=trip.id, usernames=["alice", "zed"])


async def test_remove_unreferenced_member(session, trip, trip_members):
    carol = trip_members[2]

    assert await remove_member(session, trip_id=trip.id, member_id=carol.id) is True
    assert [m.name for m in await list_members(session, trip_id=trip.id)] == ["Alice", "Bob"]
    assert await remove_member(session, trip_id=trip.id, member_id=carol.id) is False


async def test_cannot_remove_payer(session, trip, trip_members):
    alice = trip_members[0]
    await create_expense(session, trip_id=trip.id, amount=30, paid_by_member_id=alice.id, split_type=SplitType.EQUALLY)

    with pytest.raises(MemberInUseError, match="Alice"):
        await remove_member(session, trip_id=trip.id, member_id=alice.id)


async def test_cannot_remove_split_participant(session, trip, trip_members):
    alice, _bob, carol = trip_members
    await create_expense(
        session,
        trip_id=trip.id,
        amount=30,
        paid_by_member_id=alice.id,
        split_type=SplitType.EQUALLY,
        split_details=[SplitDetail(member_id=str(carol.id))],
    )

    with pytest.raises(MemberInUseError):
        await remove_member(session, trip_id=trip.id, member_id=carol.id)
    assert len(await list_members(session, trip_id=trip.id)) == 3


async def test_upsert_without_create_does_not_readd_a_leaver(session, trip, trip_members):
    dana = await upsert_member(session, trip=trip, tg_user_id=4, name="Dana")
    assert await remove_member(session, trip_id=trip.id, member_id=dana.id) is True

    assert await upsert_member(session, trip=trip, tg_user_id=4, name="Dana", create=False) is None
    assert [m.name for m in await list_members(session, trip_id=trip.id)] == ["Alice", "Bob", "Carol"]

    alice = await upsert_member(session, trip=trip, tg_user_id=1, name="Alice", username="alice", create=False)
    assert alice.id == trip_members[0].id
