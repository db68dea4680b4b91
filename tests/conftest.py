"""
Shared test fixtures.

Every test gets its own in-memory SQLite database (StaticPool keeps the
single connection alive across sessions), a fresh rate-limit gate and a
fresh aggregate cache.
"""

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlmodel import SQLModel

from festival_tracker.core.rate_limit import limiter
from festival_tracker.core.setting import settings
from festival_tracker.db.session import create_session_maker
from festival_tracker.db.sqlite_adapter import SQLiteAdapter
from festival_tracker.services.aggregate_cache import AggregateCache
from festival_tracker.services.event_store import EventStore
from festival_tracker.services.identity_hasher import IdentityHasher
from festival_tracker.services.request_gate import RequestGate

ADMIN_TOKEN = "test-admin-token"


def at(day: date, hour: int = 12, minute: int = 0) -> datetime:
    """Aware UTC datetime on a given day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


async def seed(session, events):
    """
    Insert events at fixed times.

    Args:
        events: iterable of (festival_id, datetime) pairs
    """
    for festival_id, when in events:
        store = EventStore(session, clock=lambda when=when: when)
        await store.append(festival_id, "0" * 32, "203.0.113.7")


@pytest_asyncio.fixture
async def engine():
    engine = SQLiteAdapter().create_engine("sqlite+aiosqlite://")
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return create_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def gate():
    return RequestGate("10/minute")


@pytest.fixture
def cache():
    return AggregateCache()


@pytest.fixture
def hasher():
    return IdentityHasher("test-secret")


@pytest.fixture
def operator_headers(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_TOKEN", ADMIN_TOKEN)
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture(autouse=True)
def disable_api_rate_limits():
    limiter.enabled = False
    yield
    limiter.enabled = True
