"""
Embedding Provider Adapter

Turns text into an embedding vector through a configurable provider and keeps
a bounded, process-wide cache of results.

Providers:
----------
- openai: OpenAI embeddings API (text-embedding-3-small, 1536 dimensions)
- local:  sentence-transformers model loaded in-process (CPU/CUDA/MPS)

Contract:
---------
get_embedding(text) never raises. It returns the vector on success and an
empty list when the text is blank or the provider fails, so callers branch on
emptiness instead of catching exceptions.

Cache:
------
Keyed by text.lower().strip(). Only non-empty vectors are stored, so a failed
call is retried on the next request. The cache is a cachetools.TTLCache
(EMBEDDING_CACHE_SIZE entries, EMBEDDING_CACHE_TTL_SECONDS expiry); concurrent
misses for the same key may both call the provider and overwrite each other
with equivalent values.

Usage:
------
adapter = await get_embedding_adapter()
vector = await adapter.get_embedding("posts about product launches")
if not vector:
    ...  # provider unavailable
"""

import asyncio
import logging
from typing import Optional

import numpy as np
import torch
from cachetools import TTLCache
from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmbeddingProvider:
    """Base class for embedding backends. embed() may raise; the adapter absorbs it."""

    name: str = "base"

    def __init__(self, model_name: str):
        self.model_name = model_name

    async def initialize(self) -> None:
        """Load clients or models. Called once before the first embed()."""

    async def embed(self, text: str) -> list[float]:
        raise NotImplementedError

    async def shutdown(self) -> None:
        """Release clients or models."""


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI API."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(model_name or settings.EMBEDDING_MODEL)
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.timeout = timeout or settings.EMBEDDING_REQUEST_TIMEOUT
        self.client = client

    async def initialize(self) -> None:
        if self.client is not None:
            return
        if not self.api_key:
            logger.warning("OPENAI_API_KEY is not set; query embeddings will be unavailable")
            return
        self.client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=1)

    async def embed(self, text: str) -> list[float]:
        if self.client is None:
            raise RuntimeError("OpenAI client is not configured")

        response = await self.client.embeddings.create(
            model=self.model_name,
            input=text,
        )
        if not response.data:
            return []
        return list(response.data[0].embedding)

    async def shutdown(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Embeddings from a local sentence-transformers model.

    Model loading and encoding are CPU-bound and run in a worker thread.
    Vectors are L2-normalized, which keeps cosine similarity well-behaved.
    """

    name = "local"

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        normalize: bool = True,
    ):
        super().__init__(model_name or settings.LOCAL_EMBEDDING_MODEL)
        self.device = device or settings.EMBEDDING_DEVICE
        self.normalize = normalize
        self.model: Optional[SentenceTransformer] = None

        self._validate_device()

    def _validate_device(self) -> None:
        """Fall back to CPU when the configured accelerator is missing."""
        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA not available, falling back to CPU")
            self.device = "cpu"
        elif self.device == "mps" and not torch.backends.mps.is_available():
            logger.warning("MPS not available, falling back to CPU")
            self.device = "cpu"

    async def initialize(self) -> None:
        if self.model is not None:
            return

        logger.info(f"Loading embedding model: {self.model_name} on {self.device}")
        self.model = await asyncio.to_thread(
            SentenceTransformer,
            self.model_name,
            device=self.device
        )
        logger.info(
            f"Embedding model loaded. "
            f"Dimension: {self.model.get_sentence_embedding_dimension()}, "
            f"Device: {self.device}"
        )

    async def embed(self, text: str) -> list[float]:
        if self.model is None:
            raise RuntimeError("Local embedding model is not loaded")

        embedding: np.ndarray = await asyncio.to_thread(
            self.model.encode,
            text,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )
        return embedding.tolist()

    async def shutdown(self) -> None:
        if self.model is not None:
            if self.device == "cuda":
                torch.cuda.empty_cache()
            del self.model
            self.model = None
            logger.info("Local embedding model unloaded")


def build_provider(provider_name: Optional[str] = None) -> EmbeddingProvider:
    """Provider selected by EMBEDDING_PROVIDER."""
    provider_name = provider_name or settings.EMBEDDING_PROVIDER
    if provider_name == "local":
        return LocalEmbeddingProvider()
    if provider_name == "openai":
        return OpenAIEmbeddingProvider()
    raise ValueError(f"Unknown embedding provider: {provider_name}")


class EmbeddingAdapter:
    """Cached, failure-absorbing front for an EmbeddingProvider."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        dimension: Optional[int] = None,
        cache_size: Optional[int] = None,
        cache_ttl: Optional[float] = None,
    ):
        self.provider = provider
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self._cache: TTLCache = TTLCache(
            maxsize=cache_size or settings.EMBEDDING_CACHE_SIZE,
            ttl=cache_ttl or settings.EMBEDDING_CACHE_TTL_SECONDS,
        )
        self._initialized = False

    @property
    def model_name(self) -> str:
        return self.provider.model_name

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.provider.initialize()
        self._initialized = True

    @staticmethod
    def cache_key(text: str) -> str:
        return text.lower().strip()

    async def get_embedding(self, text: str) -> list[float]:
        """
        Embedding for text, or [] when text is blank or the provider fails.

        A cache hit returns without contacting the provider.
        """
        key = self.cache_key(text or "")
        if not key:
            return []

        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            if not self._initialized:
                await self.initialize()
            vector = await self.provider.embed(text)
        except Exception as e:
            logger.error(
                f"Embedding provider '{self.provider.name}' failed "
                f"({type(e).__name__}): {e}"
            )
            return []

        if not vector:
            logger.warning(f"Embedding provider '{self.provider.name}' returned an empty vector")
            return []

        if len(vector) != self.dimension:
            logger.error(
                f"Embedding dimension mismatch from '{self.provider.name}': "
                f"expected {self.dimension}, got {len(vector)}"
            )
            return []

        self._cache[key] = tuple(vector)
        return list(vector)

    def cache_info(self) -> dict:
        return {
            "size": len(self._cache),
            "capacity": int(self._cache.maxsize),
            "ttl_seconds": float(self._cache.ttl),
        }

    def clear_cache(self) -> None:
        self._cache.clear()

    async def shutdown(self) -> None:
        await self.provider.shutdown()
        self._initialized = False


# ========================================
# Process-wide adapter
# ========================================

_embedding_adapter: Optional[EmbeddingAdapter] = None


async def get_embedding_adapter() -> EmbeddingAdapter:
    """
    Get or create the process-wide adapter (and its cache).

    Used by the API process; Celery tasks build their own adapter per run
    because each task runs on a fresh event loop.
    """
    global _embedding_adapter

    if _embedding_adapter is None:
        # Provider initialization is deferred to the first get_embedding call,
        # where a failure degrades to an empty vector.
        _embedding_adapter = EmbeddingAdapter(build_provider())

    return _embedding_adapter


async def shutdown_embedding_adapter() -> None:
    """Release the process-wide adapter. Called at application shutdown."""
    global _embedding_adapter

    if _embedding_adapter is not None:
        await _embedding_adapter.shutdown()
        _embedding_adapter = None
