from __future__ import annotations

import os

# trip_splitter.config builds Settings() at import time.
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from trip_splitter.db.models import Base
from trip_splitter.services.ledger import Member
from trip_splitter.services.members import add_member, ensure_trip


@pytest.fixture
def abc_members():
    return [Member(id="a", name="Alice"), Member(id="b", name="Bob"), Member(id="c", name="Carol")]


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as s:
        yield s
    await engine.dispose()


@pytest_asyncio.fixture
async def trip(session):
    return await ensure_trip(session, tg_chat_id=-100123, title="Lisbon", currency="EUR")


@pytest_asyncio.fixture
async def trip_members(session, trip):
    """Alice, Bob and Carol, in that roster order."""
    return [
        await add_member(session, trip_id=trip.id, name="Alice", tg_user_id=1, username="alice"),
        await add_member(session, trip_id=trip.id, name="Bob", tg_user_id=2, username="Bob"),
        await add_member(session, trip_id=trip.id, name="Carol"),
    ]
