"""
Database module: event log and option tables, engine and sessions.

- DatabaseAdapter: backend-specific engine construction, picked by URL scheme
- TrackingEvent / AppOption: the two persisted tables
- get_session / init_db: request-scoped sessions and table creation
"""

from festival_tracker.db.interface import DatabaseAdapter
from festival_tracker.db.models import AppOption, TrackingEvent
from festival_tracker.db.session import get_session, async_session_maker, dispose_db, engine, init_db

__all__ = [
    "AppOption",
    "DatabaseAdapter",
    "TrackingEvent",
    "get_session",
    "async_session_maker",
    "engine",
    "init_db",
    "dispose_db",
]
