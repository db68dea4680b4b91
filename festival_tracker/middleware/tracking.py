"""
Tracking Middleware

Any GET request carrying the tracking parameter (?id=XXXXXX) is logged
before the normal response is produced. If a redirect is configured the
visitor gets a 302 to the destination instead.

Operator and documentation paths are never tracked.
"""

import logging

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from festival_tracker.core.request_context import RequestContext
from festival_tracker.core.setting import settings
from festival_tracker.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)

EXCLUDED_PREFIXES = ("/admin", "/docs", "/redoc", "/openapi.json")


class TrackingMiddleware(BaseHTTPMiddleware):
    """
    Middleware running the tracking pipeline ahead of the endpoints.

    Components (session factory, gate, hasher) are read from app.state so
    every request shares the same rate-limit counters.
    """

    def __init__(self, app, excluded_prefixes=EXCLUDED_PREFIXES):
        super().__init__(app)
        self.excluded_prefixes = tuple(excluded_prefixes)

    async def dispatch(self, request: Request, call_next):
        if self._should_track(request):
            state = request.app.state
            tracker = TrackingService(
                session_maker=state.session_maker,
                gate=state.request_gate,
                hasher=state.identity_hasher
            )
            redirect_url = await tracker.track(RequestContext.from_request(request))
            if redirect_url:
                return RedirectResponse(url=redirect_url, status_code=status.HTTP_302_FOUND)

        return await call_next(request)

    def _should_track(self, request: Request) -> bool:
        if request.method != "GET":
            return False
        if settings.TRACKING_PARAM not in request.query_params:
            return False
        return not request.url.path.startswith(self.excluded_prefixes)


def add_tracking_middleware(app):
    """
    Add tracking middleware to FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(TrackingMiddleware)
