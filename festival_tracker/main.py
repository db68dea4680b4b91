"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- Tracking middleware (every GET request carrying ?id=XXXXXX)
- Operator API routes
- Middleware (logging, CORS)
- Shared components on app.state (session factory, rate-limit gate,
  visitor hasher, aggregate cache)

Design Decisions:
- create_app() builds the application so tests can inject an in-memory
  database and fresh shared components; `app` is the production instance
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import async_sessionmaker

from festival_tracker.api import endpoints
from festival_tracker.core.rate_limit import limiter
from festival_tracker.core.setting import settings
from festival_tracker.db.session import async_session_maker, dispose_db, init_db
from festival_tracker.middleware.logging import add_logging_middleware
from festival_tracker.middleware.tracking import add_tracking_middleware
from festival_tracker.services.aggregate_cache import AggregateCache
from festival_tracker.services.identity_hasher import IdentityHasher
from festival_tracker.services.request_gate import RequestGate


def create_app(
    session_maker: Optional[async_sessionmaker] = None,
    request_gate: Optional[RequestGate] = None,
    identity_hasher: Optional[IdentityHasher] = None,
    aggregate_cache: Optional[AggregateCache] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        session_maker: Database session factory (defaults to the configured database)
        request_gate: Shared tracking gate (defaults to TRACKING_RATE_LIMIT per IP)
        identity_hasher: Visitor hasher (defaults to VISITOR_HASH_SECRET)
        aggregate_cache: Shared statistics cache

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Festival ID Tracker",
        description="Logs ?id= festival ID calls and serves aggregate statistics",
        version="1.3.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.limiter = limiter
    if request_gate is None:
        request_gate = RequestGate(settings.TRACKING_RATE_LIMIT)
    if identity_hasher is None:
        identity_hasher = IdentityHasher(settings.VISITOR_HASH_SECRET)
    if aggregate_cache is None:
        aggregate_cache = AggregateCache()

    app.state.session_maker = session_maker if session_maker is not None else async_session_maker
    app.state.request_gate = request_gate
    app.state.identity_hasher = identity_hasher
    app.state.aggregate_cache = aggregate_cache

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Last added runs first: logging wraps tracking so redirects are logged too
    add_tracking_middleware(app)
    add_logging_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["Health"])
    async def root():
        """
        Root endpoint for health checks.

        This is also the normal response of a tracked ?id= request when no
        redirect is configured.
        """
        return {
            "message": "Festival ID Tracker",
            "version": "1.3.0",
            "docs": "/docs"
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "healthy"}

    app.include_router(endpoints.router, tags=["Dashboard"])

    @app.on_event("startup")
    async def startup_event():
        """Create missing tables on startup."""
        if session_maker is None:
            await init_db()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release the database engine on shutdown."""
        if session_maker is None:
            await dispose_db()

    return app


app = create_app()
