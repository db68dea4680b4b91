"""
Database Abstraction Interface

The event log and the option table only use portable SQLAlchemy
expressions, so the one backend-specific concern is building the engine:
pool class, driver connect args and per-connection setup.

An adapter is chosen from the URL scheme by get_database_adapter().
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import Pool


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    To add a new database backend:
    1. Create a new class inheriting from DatabaseAdapter
    2. Set `scheme` and implement the abstract methods
    3. Register it in get_database_adapter()
    """

    # URL scheme prefix handled by this adapter, e.g. "sqlite"
    scheme: str = ""

    def handles(self, database_url: str) -> bool:
        return database_url.split(":", 1)[0].split("+", 1)[0] == self.scheme

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        """
        Create the async engine for a database URL.

        Args:
            database_url: Connection string for the database
            **kwargs: Extra create_async_engine options, override adapter defaults

        Returns:
            Configured AsyncEngine, with on_connect() hooked to every new connection
        """
        engine_kwargs = {"echo": False}
        engine_kwargs.update(kwargs)

        engine = create_async_engine(
            database_url,
            poolclass=self.get_pool_class(database_url),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )
        event.listen(engine.sync_engine, "connect", self._on_connect)
        return engine

    def _on_connect(self, dbapi_connection, connection_record) -> None:
        self.on_connect(dbapi_connection)

    @abstractmethod
    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        """
        Get the connection pool class for this database URL.

        Returns:
            Pool class or None to use default
        """
        pass

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """Get connection arguments specific to this database type."""
        pass

    def on_connect(self, dbapi_connection) -> None:
        """Per-connection setup (session pragmas, time zone...). No-op by default."""
