"""
Statistics Engine

Builds the dashboard views from the event store, through the aggregate cache.

Views:
- Daily view: a fixed window of days (7 by default) with zero-filled
  entries, plus whether any data exists after the window
- Per-ID view: top-N festival IDs (5 by default) or all of them, with the
  total distinct-ID count so callers can offer "N more"
- Quick counts: lifetime totals and today's count

Failure semantics:
- Store failures and query timeouts raise StorageError
- There are no partial views: one failed query fails the whole view
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Optional

from festival_tracker.core.exceptions import StorageError
from festival_tracker.core.setting import settings
from festival_tracker.db.models import utc_today
from festival_tracker.services.aggregate_cache import AggregateCache, cache_key
from festival_tracker.services.event_store import EventStore

logger = logging.getLogger(__name__)


class StatsEngine:
    """
    Service computing dashboard statistics.

    One instance per dashboard request (it holds the request's store); the
    cache it is given is shared across requests.
    """

    def __init__(
        self,
        store: EventStore,
        cache: AggregateCache,
        *,
        window_days: int = settings.STATS_WINDOW_DAYS,
        top_limit: int = settings.TOP_IDS_LIMIT,
        query_timeout: Optional[float] = settings.STATS_QUERY_TIMEOUT,
        lifetime_ttl: float = settings.LIFETIME_CACHE_TTL,
        today_ttl: float = settings.TODAY_CACHE_TTL,
        today: Callable[[], date] = utc_today
    ):
        self.store = store
        self.cache = cache
        self.window_days = window_days
        self.top_limit = top_limit
        self.query_timeout = query_timeout
        self.lifetime_ttl = lifetime_ttl
        self.today_ttl = today_ttl
        self.today = today

    def default_anchor(self) -> date:
        """First day of the window that ends today."""
        return self.today() - timedelta(days=self.window_days - 1)

    async def daily_view(self, anchor: Optional[date] = None) -> dict:
        """
        Per-day totals for one window.

        Args:
            anchor: First day of the window (defaults to today - 6)

        Returns:
            Dictionary with:
            - period_start / period_end: inclusive window bounds
            - days: one {date, total_calls, unique_ids_count} per day
            - has_next_window: whether any event exists after period_end
            - previous_start / next_start: anchors of the adjacent windows
        """
        period_start = anchor if anchor is not None else self.default_anchor()
        period_end = period_start + timedelta(days=self.window_days - 1)
        next_start = period_end + timedelta(days=1)

        rollup = await self._cached(
            cache_key("daily_rollup", period_start, period_end),
            self.lifetime_ttl,
            lambda: self.store.daily_rollup(period_start, period_end)
        )
        has_next_window = await self._cached(
            cache_key("future_data", next_start),
            self.lifetime_ttl,
            lambda: self.store.exists_on_or_after(next_start)
        )

        by_day = {row.day: row for row in rollup}
        days = []
        for offset in range(self.window_days):
            day = period_start + timedelta(days=offset)
            row = by_day.get(day)
            days.append({
                "date": day,
                "total_calls": row.total_calls if row else 0,
                "unique_ids_count": row.unique_ids_count if row else 0,
            })

        return {
            "period_start": period_start,
            "period_end": period_end,
            "days": days,
            "has_next_window": bool(has_next_window),
            "previous_start": period_start - timedelta(days=self.window_days),
            "next_start": next_start,
        }

    async def per_id_view(self, show_all: bool = False) -> dict:
        """
        Lifetime statistics per festival ID.

        Args:
            show_all: Return every ID instead of the top N

        Returns:
            Dictionary with:
            - total_unique_ids: distinct IDs ever recorded (independent of truncation)
            - rows: FestivalIdRollup rows, most accessed first
            - limit / show_all: how the rows were truncated
            - remaining: IDs not shown (the "N more" of a show-more link)
        """
        total_unique_ids = await self._cached(
            cache_key("unique_ids"),
            self.lifetime_ttl,
            self.store.count_distinct_ids
        )

        limit = None if show_all else self.top_limit
        rows = await self._cached(
            cache_key("per_id", "all" if show_all else limit),
            self.lifetime_ttl,
            lambda: self.store.per_id_rollup(limit)
        )

        remaining = 0 if show_all else max(total_unique_ids - self.top_limit, 0)
        return {
            "total_unique_ids": total_unique_ids,
            "rows": rows,
            "limit": self.top_limit,
            "show_all": show_all,
            "remaining": remaining,
        }

    async def quick_counts(self) -> dict:
        """Lifetime total, distinct IDs and today's calls."""
        today = self.today()
        total_calls = await self._cached(
            cache_key("total_calls"),
            self.lifetime_ttl,
            self.store.count_all
        )
        unique_ids = await self._cached(
            cache_key("unique_ids"),
            self.lifetime_ttl,
            self.store.count_distinct_ids
        )
        today_calls = await self._cached(
            cache_key("today_calls", today),
            self.today_ttl,
            lambda: self.store.count_on_day(today)
        )
        return {
            "total_calls": total_calls,
            "unique_ids": unique_ids,
            "today_calls": today_calls,
        }

    def refresh(self) -> None:
        """Invalidate every cached aggregate."""
        self.cache.invalidate_all()

    async def _cached(
        self,
        key: str,
        ttl: float,
        query: Callable[[], Awaitable[Any]]
    ) -> Any:
        return await self.cache.get_or_compute(key, ttl, lambda: self._bounded(query(), key))

    async def _bounded(self, awaitable: Awaitable[Any], key: str) -> Any:
        if self.query_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.query_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Statistics query {key} timed out after {self.query_timeout}s")
            raise StorageError(f"Query {key} timed out", e) from e
