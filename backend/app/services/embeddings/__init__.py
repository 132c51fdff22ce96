"""Embedding generation: the cached provider adapter and the backfill batcher."""

from app.services.embeddings.backfill import BackfillReport, BackfillScope, EmbeddingBackfillService
from app.services.embeddings.embedder import (
    EmbeddingAdapter,
    EmbeddingProvider,
    get_embedding_adapter,
    shutdown_embedding_adapter,
)

__all__ = [
    "BackfillReport",
    "BackfillScope",
    "EmbeddingAdapter",
    "EmbeddingBackfillService",
    "EmbeddingProvider",
    "get_embedding_adapter",
    "shutdown_embedding_adapter",
]
