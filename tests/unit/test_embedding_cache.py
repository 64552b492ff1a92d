"""Unit tests for the text-keyed embedding cache."""

from datetime import datetime

import pytest

from agent_memory.memory.embedding_cache import EmbeddingCache
from agent_memory.memory.models import Embedding, Memory, PlanData


async def seed(store, text: str, vector):
    embedding = Embedding(
        id=f"embedding:{text}",
        agent_id="agent:1",
        text=text,
        embedding=vector,
        created_at=datetime(2025, 1, 15, 12, 0),
    )
    memory = Memory(
        id=f"memory:{text}",
        agent_id="agent:1",
        description=text,
        embedding_id=embedding.id,
        importance=5,
        data=PlanData(),
        created_at=embedding.created_at,
    )
    await store.insert_memory_with_embedding(embedding, memory)


class TestEmbeddingCache:
    """Test cache lookups against the document store."""

    @pytest.mark.asyncio
    async def test_lookup_preserves_order(self, store):
        """Hits and misses line up with the input texts."""
        await seed(store, "walked to the park", [1.0, 0.0])
        await seed(store, "ate lunch", [0.0, 1.0])

        cache = EmbeddingCache(store)
        result = await cache.lookup(["ate lunch", "unknown", "walked to the park"])

        assert result == [[0.0, 1.0], None, [1.0, 0.0]]

    @pytest.mark.asyncio
    async def test_paraphrase_is_a_miss(self, store):
        """Only identical text hits the cache."""
        await seed(store, "walked to the park", [1.0, 0.0])

        cache = EmbeddingCache(store)
        result = await cache.lookup(["walked to the park.", "Walked to the park"])

        assert result == [None, None]

    @pytest.mark.asyncio
    async def test_stats(self, store):
        """Hit and miss counts accumulate across lookups."""
        await seed(store, "a", [1.0])
        cache = EmbeddingCache(store)

        await cache.lookup(["a", "b"])
        await cache.lookup(["a"])

        stats = cache.get_stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["total"] == 3
        assert stats["hit_rate"] == pytest.approx(2 / 3)

    def test_stats_empty(self, store):
        assert EmbeddingCache(store).get_stats()["hit_rate"] == 0.0
