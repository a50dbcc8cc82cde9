"""Database module."""

from subfeed.db.database import (
    async_session_maker,
    create_engine_from_settings,
    create_session_maker,
    dispose_db,
    engine,
    get_db,
    init_db,
    ping_db,
)

__all__ = [
    "async_session_maker",
    "create_engine_from_settings",
    "create_session_maker",
    "dispose_db",
    "engine",
    "get_db",
    "init_db",
    "ping_db",
]
