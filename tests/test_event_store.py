"""
Tests for the append-only event store and its aggregate queries.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import at, seed
from festival_tracker.core.exceptions import StorageError
from festival_tracker.db.models import TrackingEvent
from festival_tracker.services.event_store import DailyRollup, EventStore, FestivalIdRollup

DAY = date(2026, 10, 15)


@pytest.mark.asyncio
async def test_append_increments_count_and_appears_in_rollup(session):
    store = EventStore(session, clock=lambda: at(DAY, 9))
    before = await store.count_all()

    event_id = await store.append("ABC123", "f" * 32, "198.51.100.4")

    assert event_id is not None
    assert await store.count_all() == before + 1
    assert await store.daily_rollup(DAY, DAY) == [DailyRollup(DAY, 1, 1)]


@pytest.mark.asyncio
async def test_append_stores_server_timestamp_and_fields(session):
    store = EventStore(session, clock=lambda: at(DAY, 8, 30))
    await store.append("XYZ789", "a" * 32, "2001:db8::1")

    result = await session.execute(select(TrackingEvent))
    event = result.scalar_one()
    assert event.festival_id == "XYZ789"
    assert event.user_hash == "a" * 32
    assert event.ip_address == "2001:db8::1"
    assert event.timestamp.replace(tzinfo=None) == at(DAY, 8, 30).replace(tzinfo=None)


@pytest.mark.asyncio
async def test_ids_increase_in_insertion_order(session):
    store = EventStore(session, clock=lambda: at(DAY))
    first = await store.append("AAA111", "0" * 32, "198.51.100.1")
    second = await store.append("AAA111", "0" * 32, "198.51.100.1")
    assert second > first


@pytest.mark.asyncio
async def test_counts(session):
    await seed(session, [
        ("AAA111", at(DAY, 0, 0)),
        ("AAA111", at(DAY, 23, 59)),
        ("BBB222", at(DAY, 12)),
        ("CCC333", at(DAY - timedelta(days=1), 23, 59)),
        ("CCC333", at(DAY + timedelta(days=1), 0, 0)),
    ])
    store = EventStore(session)

    assert await store.count_all() == 5
    assert await store.count_distinct_ids() == 3
    assert await store.count_on_day(DAY) == 3
    assert await store.count_on_day(DAY - timedelta(days=1)) == 1
    assert await store.count_on_day(DAY + timedelta(days=5)) == 0


@pytest.mark.asyncio
async def test_daily_rollup_skips_empty_days(session):
    start = DAY
    await seed(session, [
        ("AAA111", at(start)),
        ("AAA111", at(start, 13)),
        ("BBB222", at(start, 14)),
        ("AAA111", at(start + timedelta(days=3))),
        ("ZZZ999", at(start + timedelta(days=7))),  # outside the range
    ])
    store = EventStore(session)

    rollup = await store.daily_rollup(start, start + timedelta(days=6))

    assert rollup == [
        DailyRollup(start, 3, 2),
        DailyRollup(start + timedelta(days=3), 1, 1),
    ]


@pytest.mark.asyncio
async def test_exists_on_or_after(session):
    await seed(session, [("AAA111", at(DAY, 10))])
    store = EventStore(session)

    assert await store.exists_on_or_after(DAY) is True
    assert await store.exists_on_or_after(DAY - timedelta(days=3)) is True
    assert await store.exists_on_or_after(DAY + timedelta(days=1)) is False


@pytest.mark.asyncio
async def test_per_id_rollup_orders_by_accesses_then_id(session):
    events = (
        [("B2B2B2", at(DAY, hour)) for hour in range(5)]
        + [("A1A1A1", at(DAY + timedelta(days=offset))) for offset in range(5)]
        + [("C3C3C3", at(DAY, hour)) for hour in range(3)]
    )
    await seed(session, events)
    store = EventStore(session)

    rollup = await store.per_id_rollup()

    assert rollup == [
        FestivalIdRollup("A1A1A1", 5, 5),
        FestivalIdRollup("B2B2B2", 5, 1),
        FestivalIdRollup("C3C3C3", 3, 1),
    ]
    assert await store.per_id_rollup(limit=2) == rollup[:2]


@pytest.mark.asyncio
async def test_empty_store(session):
    store = EventStore(session)
    assert await store.count_all() == 0
    assert await store.count_distinct_ids() == 0
    assert await store.daily_rollup(DAY, DAY + timedelta(days=6)) == []
    assert await store.per_id_rollup() == []
    assert await store.exists_on_or_after(DAY) is False


class BrokenSession:
    """Session stand-in whose database is unreachable."""

    def add(self, instance):
        pass

    async def commit(self):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    async def rollback(self):
        pass

    async def execute(self, statement):
        raise OperationalError("SELECT", {}, Exception("unable to open database file"))


@pytest.mark.asyncio
async def test_append_failure_raises_storage_error():
    store = EventStore(BrokenSession())
    with pytest.raises(StorageError):
        await store.append("ABC123", "0" * 32, "198.51.100.1")


@pytest.mark.asyncio
async def test_query_failure_raises_storage_error():
    store = EventStore(BrokenSession())
    with pytest.raises(StorageError):
        await store.count_all()
    with pytest.raises(StorageError):
        await store.per_id_rollup()
