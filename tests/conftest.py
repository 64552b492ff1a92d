"""Shared fixtures for memory engine tests.

Provides an in-memory SQLite store and in-process fakes for the vector
index, the embedding provider and the language model.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from agent_memory.core.config import MemoryConfig
from agent_memory.database.sqlite_manager import SQLiteManager
from agent_memory.memory.base import EmbeddingProvider, LanguageModelService, VectorIndex
from agent_memory.memory.memory_db import MemoryDB
from agent_memory.memory.models import VectorItem, VectorMatch


def cosine(a: List[float], b: List[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


def text_vector(text: str) -> List[float]:
    """Deterministic 4-d vector derived from the text's characters."""
    buckets = [0.0, 0.0, 0.0, 0.0]
    for i, char in enumerate(text):
        buckets[i % 4] += ord(char)
    return [value / 1000 for value in buckets]


class FakeClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, start: datetime = datetime(2025, 1, 15, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeEmbedder(EmbeddingProvider):
    """Records every batch; returns preset vectors or a text-derived one."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.vectors: Dict[str, List[float]] = {}
        self.drop_last = False

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors = [self.vectors.get(text, text_vector(text)) for text in texts]
        if self.drop_last:
            vectors = vectors[:-1]
        return vectors


class FakeLLM(LanguageModelService):
    """Returns queued replies (or a default) and records prompts."""

    def __init__(self, default_reply: str = "5"):
        self.default_reply = default_reply
        self.replies: List[str] = []
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages: List[Dict[str, str]], max_tokens: int) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens})
        if self.replies:
            return self.replies.pop(0)
        return self.default_reply


class FakeVectorIndex(VectorIndex):
    """Brute-force cosine index with equality metadata filters."""

    def __init__(self):
        self.namespaces: Dict[str, Dict[str, VectorItem]] = {}
        self.query_calls: List[Dict[str, Any]] = []

    async def upsert(self, namespace: str, items: List[VectorItem]) -> None:
        bucket = self.namespaces.setdefault(namespace, {})
        for item in items:
            bucket[item.id] = item

    async def query(self, namespace, vector, filter, top_k) -> List[VectorMatch]:
        self.query_calls.append({"namespace": namespace, "filter": filter, "top_k": top_k})
        items = [
            item for item in self.namespaces.get(namespace, {}).values()
            if all(item.metadata.get(key) == value for key, value in filter.items())
        ]
        matches = [VectorMatch(id=item.id, score=cosine(vector, item.vector)) for item in items]
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches[:top_k]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def vector_index():
    return FakeVectorIndex()


@pytest.fixture
def memory_config():
    return MemoryConfig()


@pytest_asyncio.fixture
async def store():
    """In-memory SQLite document store."""
    manager = SQLiteManager(db_path=":memory:")
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def memory_db(store, vector_index, embedder, llm, memory_config, clock):
    return MemoryDB(store, vector_index, embedder, llm, config=memory_config, clock=clock)
