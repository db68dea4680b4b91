"""
FastAPI Endpoints for the Operator Dashboard

This module defines the operator API with minimal logic.
Endpoints only handle:
- Operator authorization
- Rate limiting
- Error handling and HTTP responses
- Delegating to the service layer

Error mapping:
- AuthorizationError -> 403
- ValidationError -> 400
- StorageError -> 503, never stale or zero data presented as real
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Request, Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from festival_tracker.api.schemas import (
    DailyStatsResponse,
    PerIdStatsResponse,
    QuickStatsResponse,
    RedirectSettings,
    RefreshResponse,
)
from festival_tracker.core.exceptions import AuthorizationError, StorageError, ValidationError
from festival_tracker.core.rate_limit import limiter, RATE_LIMITS
from festival_tracker.core.security import verify_operator_token
from festival_tracker.db.session import get_session
from festival_tracker.services.aggregate_cache import AggregateCache
from festival_tracker.services.event_store import EventStore
from festival_tracker.services.option_store import OptionStore
from festival_tracker.services.stats_engine import StatsEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

STATS_UNAVAILABLE = "Statistics unavailable"


def require_operator(
    request: Request,
    x_admin_token: Optional[str] = Header(default=None)
) -> None:
    """Dependency rejecting callers without the operator token."""
    try:
        verify_operator_token(x_admin_token, f"{request.method} {request.url.path}")
    except AuthorizationError as e:
        logger.warning(f"{e} (IP:{request.client.host if request.client else 'unknown'})")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this page."
        )


def get_aggregate_cache(request: Request) -> AggregateCache:
    """The application's shared aggregate cache."""
    return request.app.state.aggregate_cache


def get_stats_engine(
    session: AsyncSession = Depends(get_session),
    cache: AggregateCache = Depends(get_aggregate_cache)
) -> StatsEngine:
    return StatsEngine(EventStore(session), cache)


def parse_start_date(value: Optional[str]) -> Optional[date]:
    """
    Parse the daily window anchor.

    An unparsable value falls back to the default window instead of failing.
    """
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        logger.info(f"Ignoring invalid start_date {value!r}")
        return None


@router.get(
    "/stats/daily",
    response_model=DailyStatsResponse,
    dependencies=[Depends(require_operator)],
    summary="Daily statistics",
    description="Calls and distinct festival IDs per day for a 7-day window"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_daily_stats(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    start_date: Optional[str] = Query(default=None, description="First day of the window (YYYY-MM-DD)"),
    engine: StatsEngine = Depends(get_stats_engine)
) -> DailyStatsResponse:
    try:
        view = await engine.daily_view(parse_start_date(start_date))
    except StorageError as e:
        logger.error(f"Daily statistics failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STATS_UNAVAILABLE)

    return DailyStatsResponse(**view)


@router.get(
    "/stats/ids",
    response_model=PerIdStatsResponse,
    dependencies=[Depends(require_operator)],
    summary="Per festival ID statistics",
    description="Lifetime accesses and active days per festival ID, top 5 or all"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_per_id_stats(
    request: Request,
    show_all: bool = Query(default=False),
    engine: StatsEngine = Depends(get_stats_engine)
) -> PerIdStatsResponse:
    try:
        view = await engine.per_id_view(show_all=show_all)
    except StorageError as e:
        logger.error(f"Per-ID statistics failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STATS_UNAVAILABLE)

    return PerIdStatsResponse(
        total_unique_ids=view["total_unique_ids"],
        show_all=view["show_all"],
        limit=view["limit"],
        remaining=view["remaining"],
        rows=[row._asdict() for row in view["rows"]]
    )


@router.get(
    "/stats/quick",
    response_model=QuickStatsResponse,
    dependencies=[Depends(require_operator)],
    summary="Quick statistics",
    description="Lifetime totals, today's calls and the current redirect settings"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_quick_stats(
    request: Request,
    session: AsyncSession = Depends(get_session),
    engine: StatsEngine = Depends(get_stats_engine)
) -> QuickStatsResponse:
    try:
        counts = await engine.quick_counts()
        config = await OptionStore(session).load_redirect_config()
    except StorageError as e:
        logger.error(f"Quick statistics failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STATS_UNAVAILABLE)

    return QuickStatsResponse(
        **counts,
        redirect_enabled=config.enabled,
        redirect_url=config.destination_url
    )


@router.post(
    "/stats/refresh",
    response_model=RefreshResponse,
    dependencies=[Depends(require_operator)],
    summary="Refresh statistics",
    description="Drop every cached aggregate so the next reads recompute from the database"
)
@limiter.limit(RATE_LIMITS["refresh"])
async def refresh_stats(
    request: Request,
    engine: StatsEngine = Depends(get_stats_engine)
) -> RefreshResponse:
    engine.refresh()
    return RefreshResponse()


@router.get(
    "/settings",
    response_model=RedirectSettings,
    dependencies=[Depends(require_operator)],
    summary="Read redirect settings"
)
@limiter.limit(RATE_LIMITS["settings"])
async def get_settings(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> RedirectSettings:
    try:
        config = await OptionStore(session).load_redirect_config()
    except StorageError as e:
        logger.error(f"Reading settings failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return RedirectSettings(redirect_enabled=config.enabled, redirect_url=config.destination_url)


@router.put(
    "/settings",
    response_model=RedirectSettings,
    dependencies=[Depends(require_operator)],
    summary="Update redirect settings",
    description="Invalid URLs are rejected and the previous settings are kept"
)
@limiter.limit(RATE_LIMITS["settings"])
async def update_settings(
    request: Request,
    body: RedirectSettings,
    session: AsyncSession = Depends(get_session)
) -> RedirectSettings:
    try:
        config = await OptionStore(session).save_redirect_settings(
            enabled=body.redirect_enabled,
            url=body.redirect_url
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)
    except StorageError as e:
        logger.error(f"Saving settings failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return RedirectSettings(redirect_enabled=config.enabled, redirect_url=config.destination_url)
