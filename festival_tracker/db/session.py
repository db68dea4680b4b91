"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.
Uses a database abstraction layer to support different database backends.

Key Features:
- Database abstraction: engine options come from the adapter
- Async session management: Proper async context management
- Error handling: Automatic rollback on exceptions
- Session factory lives on app.state so tests can swap databases
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from festival_tracker.core.setting import settings
from festival_tracker.db import models  # noqa: F401  (registers tables on SQLModel.metadata)
from festival_tracker.db.sqlite_adapter import get_database_adapter

# Adapter chosen from the DATABASE_URL scheme
db_adapter = get_database_adapter(settings.DATABASE_URL)

engine = db_adapter.create_engine(
    settings.DATABASE_URL
)


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    """Create an async session factory bound to an engine."""
    return async_sessionmaker(
        bind,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
        autoflush=False,
    )


async_session_maker = create_session_maker(engine)


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create missing tables. Alembic migrations remain the source of truth for upgrades."""
    async with bind.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


async def dispose_db(bind: AsyncEngine = engine) -> None:
    """Close pooled connections held by the engine."""
    await bind.dispose()


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    This function:
    - Creates a new async session from the app's session factory
    - Yields it to the endpoint
    - Automatically commits on success
    - Rolls back on exception
    """
    session_maker = getattr(request.app.state, "session_maker", async_session_maker)
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
