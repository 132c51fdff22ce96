"""
Database Dependencies for FastAPI Routes

Routes declare `db: DBSession` (or `Depends(get_db)`) and receive a session
whose lifetime is the request. Services never open request sessions
themselves; they are handed one by the route.

Learning Resources:
- FastAPI Dependencies: https://fastapi.tiangolo.com/tutorial/dependencies/
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session.

    The session is rolled back if the route raises, and closed afterwards.
    Routes that write must commit explicitly (or call a service that does).
    """
    async for session in get_session():
        yield session


# Type annotation shortcut:  async def route(db: DBSession): ...
DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_db_override(session) -> Callable[[], AsyncGenerator]:
    """
    Build a dependency override that always yields the given session.

        app.dependency_overrides[get_db] = get_db_override(test_session)

    The session may be a real AsyncSession or a test double.
    """
    async def _get_db_override():
        yield session

    return _get_db_override


__all__ = [
    "get_db",
    "DBSession",
    "get_db_override",
]
