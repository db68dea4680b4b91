"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.

Key characteristics:
- File-based (single .db file) or in-memory (tests)
- No server required
- Single writer at a time. Concurrent tracking requests each insert one
  row, so writers wait on the lock (busy_timeout) instead of failing with
  "database is locked"; WAL lets dashboard reads run alongside them
"""

from typing import Any, Optional

from sqlalchemy.pool import NullPool, Pool, StaticPool

from festival_tracker.db.interface import DatabaseAdapter

# Milliseconds a writer waits for the lock before giving up
BUSY_TIMEOUT_MS = 5000


def is_memory_url(database_url: str) -> bool:
    """True for in-memory SQLite URLs (sqlite+aiosqlite:// or :memory:)."""
    return database_url.endswith("://") or ":memory:" in database_url


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.
    """

    scheme = "sqlite"

    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        """
        - File database: NullPool, a fresh connection per session
        - In-memory database: StaticPool, every session must share the one
          connection or it would see an empty database
        """
        if is_memory_url(database_url):
            return StaticPool
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False
        }

    def on_connect(self, dbapi_connection) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


ADAPTERS: tuple[DatabaseAdapter, ...] = (SQLiteAdapter(),)


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Pick the adapter for a database URL.

    Raises:
        ValueError: If no adapter handles the URL scheme
    """
    for adapter in ADAPTERS:
        if adapter.handles(database_url):
            return adapter
    raise ValueError(f"Unsupported database URL scheme: {database_url.split(':', 1)[0]}")
