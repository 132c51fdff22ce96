"""
Tests for EmbeddingAdapter.

This test module verifies:
1. Cache hits skip the provider
2. Failures degrade to an empty vector and are not cached
3. Blank input and dimension mismatches
4. Cache bounds
5. Provider selection
"""

import pytest

from app.services.embeddings.embedder import (
    EmbeddingAdapter,
    LocalEmbeddingProvider,
    OpenAIEmbeddingProvider,
    build_provider,
)


@pytest.mark.asyncio
class TestEmbeddingCache:
    """Test the adapter cache."""

    async def test_second_call_is_served_from_cache(self, adapter, fake_provider):
        first = await adapter.get_embedding("Launch week recap")
        second = await adapter.get_embedding("Launch week recap")

        assert first == second == [0.5, 0.5, 0.5, 0.5]
        assert fake_provider.calls == ["Launch week recap"]

    async def test_cache_key_ignores_case_and_surrounding_whitespace(self, adapter, fake_provider):
        await adapter.get_embedding("Launch Week")
        await adapter.get_embedding("  launch week ")

        assert len(fake_provider.calls) == 1

    async def test_returned_vector_is_a_copy(self, adapter):
        vector = await adapter.get_embedding("recap")
        vector.append(9.9)

        assert await adapter.get_embedding("recap") == [0.5, 0.5, 0.5, 0.5]

    async def test_cache_is_bounded(self, fake_provider):
        adapter = EmbeddingAdapter(fake_provider, dimension=4, cache_size=2, cache_ttl=60)

        for text in ("one", "two", "three"):
            await adapter.get_embedding(text)

        assert adapter.cache_info()["size"] == 2
        assert adapter.cache_info()["capacity"] == 2

    async def test_clear_cache(self, adapter, fake_provider):
        await adapter.get_embedding("recap")
        adapter.clear_cache()
        await adapter.get_embedding("recap")

        assert len(fake_provider.calls) == 2


@pytest.mark.asyncio
class TestEmbeddingFailures:
    """Test failure handling."""

    async def test_provider_error_returns_empty_vector(self, adapter, fake_provider):
        fake_provider.fail_all = True

        assert await adapter.get_embedding("recap") == []

    async def test_failure_is_not_cached(self, adapter, fake_provider):
        fake_provider.fail_all = True
        assert await adapter.get_embedding("recap") == []

        fake_provider.fail_all = False
        assert await adapter.get_embedding("recap") == [0.5, 0.5, 0.5, 0.5]
        assert len(fake_provider.calls) == 2

    async def test_blank_text_never_reaches_provider(self, adapter, fake_provider):
        assert await adapter.get_embedding("") == []
        assert await adapter.get_embedding("   ") == []
        assert fake_provider.calls == []

    async def test_dimension_mismatch_returns_empty_vector(self, adapter, fake_provider):
        fake_provider.vectors["short"] = [0.1, 0.2]

        assert await adapter.get_embedding("short") == []
        assert adapter.cache_info()["size"] == 0

    async def test_provider_is_initialized_once(self, adapter, fake_provider):
        await adapter.get_embedding("one")
        await adapter.get_embedding("two")

        assert fake_provider.initialized == 1

    async def test_openai_provider_without_key_degrades(self):
        provider = OpenAIEmbeddingProvider(api_key="", model_name="text-embedding-3-small")
        provider.api_key = None
        adapter = EmbeddingAdapter(provider, dimension=4)

        assert await adapter.get_embedding("recap") == []


class TestProviderSelection:
    """Test build_provider."""

    def test_openai(self):
        assert isinstance(build_provider("openai"), OpenAIEmbeddingProvider)

    def test_local(self):
        provider = build_provider("local")
        assert isinstance(provider, LocalEmbeddingProvider)
        assert provider.model is None

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_provider("word2vec")
