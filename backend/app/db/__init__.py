"""Database utilities and session management."""

from app.db.base import Base, BaseModel, String50, String100, String255, String500, utc_now
from app.db.deps import DBSession, get_db, get_db_override
from app.db.session import (
    AsyncSessionLocal,
    check_db_health,
    close_db,
    engine,
    get_session,
    init_db,
    task_session_factory,
)

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "utc_now",
    # String types
    "String50",
    "String100",
    "String255",
    "String500",
    # Session management
    "engine",
    "AsyncSessionLocal",
    "get_session",
    "init_db",
    "close_db",
    "check_db_health",
    "task_session_factory",
    # Dependencies
    "get_db",
    "DBSession",
    "get_db_override",
]
