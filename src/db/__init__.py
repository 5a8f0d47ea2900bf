"""Database module - async engine and session management."""

from src.db.engine import (
    async_session_factory,
    atomic,
    close_db,
    engine,
    get_db,
    get_session,
    init_db,
    is_lock_conflict,
    retry_on_conflict,
)

__all__ = [
    "engine",
    "async_session_factory",
    "atomic",
    "init_db",
    "close_db",
    "get_session",
    "get_db",
    "is_lock_conflict",
    "retry_on_conflict",
]
