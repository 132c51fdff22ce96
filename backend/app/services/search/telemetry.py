"""
Fire-and-forget search telemetry.

Each completed search schedules one ai_context_logs insert on the running
event loop and returns immediately. The write uses its own session, so it
outlives the request session; failures are logged and never reach the caller.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.search_logs import SearchLogRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchEvent:
    user_id: int
    query: str
    filters: dict[str, Any]
    results_found: int
    top_score: float | None
    top_results: list[dict[str, Any]] = field(default_factory=list)
    model_used: str | None = None


class SearchTelemetryRecorder:
    """Schedules telemetry writes without awaiting them."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, event: SearchEvent) -> None:
        """Schedule the write. Safe to call from any coroutine; never raises."""
        try:
            task = asyncio.get_running_loop().create_task(self._write(event))
        except RuntimeError as e:
            logger.error(f"Search telemetry not scheduled for user {event.user_id}: {e}")
            return

        # Keep a strong reference until the task finishes
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, event: SearchEvent) -> None:
        try:
            async with self.session_factory() as session:
                await SearchLogRepository(session).add(
                    user_id=event.user_id,
                    query=event.query,
                    filters=event.filters,
                    results_found=event.results_found,
                    top_score=event.top_score,
                    top_results=event.top_results,
                    model_used=event.model_used,
                )
        except Exception as e:
            logger.error(f"Failed to log search analytics for user {event.user_id}: {e}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for scheduled writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
