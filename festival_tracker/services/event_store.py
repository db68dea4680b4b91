"""
Event Store

Append-only persistence of tracking events and the aggregate queries the
dashboard is built from.

Design Decisions:
- One row per accepted request, never updated or deleted here
- The timestamp comes from the store clock at insert time
- Every query is a SQLAlchemy expression with bound parameters; the table
  name comes from the model, never from request or config data
- Any SQLAlchemy failure surfaces as StorageError; no automatic retries
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, NamedTuple, Optional

from sqlalchemy import distinct, exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from festival_tracker.core.exceptions import StorageError
from festival_tracker.db.models import TrackingEvent, utc_now

logger = logging.getLogger(__name__)


class DailyRollup(NamedTuple):
    day: date
    total_calls: int
    unique_ids_count: int


class FestivalIdRollup(NamedTuple):
    festival_id: str
    total_accesses: int
    unique_days_used: int


def day_start(day: date) -> datetime:
    """Midnight UTC at the start of a calendar day."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _as_date(value) -> date:
    # DATE() comes back as 'YYYY-MM-DD' text on SQLite and as a date elsewhere
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class EventStore:
    """
    Service for writing and aggregating tracking events.
    """

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utc_now):
        """
        Initialize the event store with a database session.

        Args:
            session: Async database session for database operations
            clock: Source of insert timestamps (UTC)
        """
        self.session = session
        self.clock = clock

    async def append(self, festival_id: str, visitor_hash: str, ip_address: str) -> int:
        """
        Append one tracking event.

        Args:
            festival_id: Validated 6-character festival ID
            visitor_hash: 32-char day-rotating visitor hash
            ip_address: Resolved client IP

        Returns:
            The new event id

        Raises:
            StorageError: If the insert or commit fails
        """
        event = TrackingEvent(
            festival_id=festival_id,
            user_hash=visitor_hash,
            ip_address=ip_address,
            timestamp=self.clock()
        )

        try:
            self.session.add(event)
            await self.session.commit()
            await self.session.refresh(event)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(f"Failed to append event for {festival_id}", e) from e

        return event.id

    async def count_all(self) -> int:
        """Total number of events."""
        statement = select(func.count()).select_from(TrackingEvent)
        return await self._scalar(statement, "count events")

    async def count_distinct_ids(self) -> int:
        """Number of distinct festival IDs ever recorded."""
        statement = select(func.count(distinct(TrackingEvent.festival_id)))
        return await self._scalar(statement, "count distinct festival IDs")

    async def count_on_day(self, day: date) -> int:
        """Number of events on one UTC calendar day."""
        statement = (
            select(func.count())
            .select_from(TrackingEvent)
            .where(TrackingEvent.timestamp >= day_start(day))
            .where(TrackingEvent.timestamp < day_start(day + timedelta(days=1)))
        )
        return await self._scalar(statement, f"count events on {day}")

    async def daily_rollup(self, start_day: date, end_day: date) -> list[DailyRollup]:
        """
        Per-day totals over an inclusive day range.

        Only days with at least one event are returned; filling the gaps is
        the caller's job.

        Args:
            start_day: First day of the range
            end_day: Last day of the range (inclusive)

        Returns:
            DailyRollup rows in ascending day order
        """
        day_column = func.date(TrackingEvent.timestamp).label("day")
        statement = (
            select(
                day_column,
                func.count().label("total_calls"),
                func.count(distinct(TrackingEvent.festival_id)).label("unique_ids_count"),
            )
            .where(TrackingEvent.timestamp >= day_start(start_day))
            .where(TrackingEvent.timestamp < day_start(end_day + timedelta(days=1)))
            .group_by(day_column)
            .order_by(day_column)
        )
        rows = await self._all(statement, f"daily rollup {start_day}..{end_day}")
        return [
            DailyRollup(_as_date(row.day), int(row.total_calls), int(row.unique_ids_count))
            for row in rows
        ]

    async def exists_on_or_after(self, day: date) -> bool:
        """True if any event was recorded at or after the start of a day."""
        statement = select(exists().where(TrackingEvent.timestamp >= day_start(day)))
        return bool(await self._scalar(statement, f"check events after {day}"))

    async def per_id_rollup(self, limit: Optional[int] = None) -> list[FestivalIdRollup]:
        """
        Lifetime totals per festival ID.

        Ordered by total accesses descending, ties by festival ID ascending.

        Args:
            limit: Maximum number of rows, None for all

        Returns:
            FestivalIdRollup rows
        """
        total_accesses = func.count().label("total_accesses")
        statement = (
            select(
                TrackingEvent.festival_id,
                total_accesses,
                func.count(distinct(func.date(TrackingEvent.timestamp))).label("unique_days_used"),
            )
            .group_by(TrackingEvent.festival_id)
            .order_by(total_accesses.desc(), TrackingEvent.festival_id.asc())
        )
        if limit is not None:
            statement = statement.limit(limit)

        rows = await self._all(statement, "per-ID rollup")
        return [
            FestivalIdRollup(row.festival_id, int(row.total_accesses), int(row.unique_days_used))
            for row in rows
        ]

    async def _scalar(self, statement, description: str):
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to {description}", e) from e
        return result.scalar() or 0

    async def _all(self, statement, description: str):
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to {description}", e) from e
        return result.all()
