"""
Access Logging Middleware

One log line per HTTP request on the "festival_tracker" logger:
method, path, status, latency and client IP. Redirects issued by the
tracking middleware add their destination host, server errors are logged
at ERROR.

The query string is never logged: it carries festival IDs of anonymous
visitors. Only whether the tracking parameter was present is recorded.
"""

import logging
import time
from urllib.parse import urlsplit

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from festival_tracker.core.request_context import get_client_ip
from festival_tracker.core.setting import settings

logger = logging.getLogger("festival_tracker")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.
    """

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request)
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP [tracked] [-> host]
        line = (
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )
        if settings.TRACKING_PARAM in request.query_params:
            line += " tracked"
        location = response.headers.get("location")
        if location:
            line += f" -> {urlsplit(location).hostname}"

        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, line)

        response.headers["X-Process-Time"] = f"{process_time:.6f}"

        return response


def add_logging_middleware(app):
    """
    Add logging middleware to FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(LoggingMiddleware)
