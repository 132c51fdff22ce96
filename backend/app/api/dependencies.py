"""
FastAPI dependencies that assemble services for a request.

Each service gets repositories bound to the request's session. Tests swap
these out through app.dependency_overrides.
"""

from collections.abc import AsyncIterator
from typing import Optional

from fastapi import Depends

from app.core.exceptions import PermissionDeniedError
from app.db.deps import DBSession
from app.db.session import AsyncSessionLocal
from app.models.user import User
from app.repositories.insights import InsightRepository
from app.repositories.posts import PostRepository
from app.repositories.search_logs import SearchLogRepository
from app.services.embeddings.backfill import EmbeddingBackfillService
from app.services.embeddings.embedder import EmbeddingAdapter, get_embedding_adapter
from app.services.insights.metrics_client import PlatformMetricsClient
from app.services.insights.sync_service import InsightSyncService
from app.services.search.service import HybridSearchService
from app.services.search.telemetry import SearchTelemetryRecorder

_telemetry: Optional[SearchTelemetryRecorder] = None


def get_search_telemetry() -> SearchTelemetryRecorder:
    """Process-wide telemetry recorder writing through its own sessions."""
    global _telemetry

    if _telemetry is None:
        _telemetry = SearchTelemetryRecorder(AsyncSessionLocal)
    return _telemetry


async def drain_search_telemetry() -> None:
    """Wait for in-flight telemetry writes. Called at application shutdown."""
    if _telemetry is not None:
        await _telemetry.drain()


async def get_search_service(
    db: DBSession,
    adapter: EmbeddingAdapter = Depends(get_embedding_adapter),
    telemetry: SearchTelemetryRecorder = Depends(get_search_telemetry),
) -> HybridSearchService:
    return HybridSearchService(
        posts=PostRepository(db),
        adapter=adapter,
        telemetry=telemetry,
        insights=InsightRepository(db),
        search_logs=SearchLogRepository(db),
    )


async def get_backfill_service(
    db: DBSession,
    adapter: EmbeddingAdapter = Depends(get_embedding_adapter),
) -> EmbeddingBackfillService:
    return EmbeddingBackfillService(PostRepository(db), adapter)


async def get_metrics_client() -> AsyncIterator[PlatformMetricsClient]:
    async with PlatformMetricsClient() as client:
        yield client


async def get_insight_sync_service(
    db: DBSession,
    client: PlatformMetricsClient = Depends(get_metrics_client),
) -> InsightSyncService:
    return InsightSyncService(PostRepository(db), InsightRepository(db), client)


def ensure_scope_allowed(user: User, user_only: bool) -> None:
    """All-users maintenance (user_only=False) is limited to operators."""
    if not user_only and not user.is_superuser:
        raise PermissionDeniedError("Operator access required for user_only=false")
