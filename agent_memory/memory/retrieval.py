"""Memory retrieval for the agent memory engine.

Two read paths share the same candidate generation (vector index query
filtered to one agent, then hydration from the document store):

- ``MemorySearch`` ranks by similarity only and leaves no trace.
- ``RetrievalScorer`` ranks by relevance + importance + recency and logs an
  access event for every memory it returns.
"""

import asyncio
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from agent_memory.core.config import MemoryConfig
from agent_memory.core.exceptions import InvariantViolationError
from agent_memory.core.logging import get_logger
from agent_memory.memory.base import DocumentStore, VectorIndex
from agent_memory.memory.models import (
    Memory,
    MemoryType,
    RankedMemory,
    RetrievalResult,
    VectorMatch,
    to_utc,
    utc_now,
)

logger = get_logger(__name__)


def make_range(values: Sequence[float]) -> Tuple[float, float]:
    return min(values), max(values)


def normalize(value: float, value_range: Tuple[float, float]) -> float:
    """Min-max normalize; a degenerate range contributes 0."""
    low, high = value_range
    if high == low:
        return 0.0
    return (value - low) / (high - low)


def recency_score(last_seen: datetime, now: datetime, decay_rate: float) -> float:
    """Exponential decay over hours elapsed since ``last_seen``.

    Strictly decreasing in elapsed time for any rate in (0, 1).
    """
    hours = max((to_utc(now) - to_utc(last_seen)).total_seconds(), 0.0) / 3600
    return decay_rate ** hours


def composite_scores(
    relevance: Sequence[float],
    importance: Sequence[float],
    recency: Sequence[float],
) -> List[float]:
    """Sum of the three signals, each normalized across the candidate set."""
    if not relevance:
        return []
    ranges = [make_range(signal) for signal in (relevance, importance, recency)]
    return [
        sum(
            normalize(value, value_range)
            for value, value_range in zip((rel, imp, rec), ranges)
        )
        for rel, imp, rec in zip(relevance, importance, recency)
    ]


def filter_memories_by_type(
    memory_types: Iterable[MemoryType],
    ranked: List[RankedMemory],
) -> List[RankedMemory]:
    """Keep ranked results whose payload tag is one of ``memory_types``."""
    wanted = {MemoryType(memory_type) for memory_type in memory_types}
    return [result for result in ranked if result.memory.memory_type in wanted]


async def hydrate(
    store: DocumentStore,
    agent_id: str,
    matches: List[VectorMatch],
) -> List[Memory]:
    """Load the memory behind every vector match, preserving order.

    Raises:
        InvariantViolationError: If a match has no persisted memory
    """
    memories = await asyncio.gather(*(
        store.get_memory_by_embedding_id(agent_id, match.id) for match in matches
    ))
    for match, memory in zip(matches, memories):
        if memory is None:
            logger.error("memory_missing_for_vector",
                         agent_id=agent_id,
                         embedding_id=match.id)
            raise InvariantViolationError(
                f"No memory found for agent {agent_id} and embedding {match.id}",
                agent_id=agent_id,
                embedding_id=match.id,
            )
    return list(memories)


class MemorySearch:
    """Similarity-only lookup that does not touch recency statistics."""

    def __init__(
        self,
        store: DocumentStore,
        vector_index: VectorIndex,
        config: Optional[MemoryConfig] = None,
        namespace: str = "embeddings",
    ):
        self.store = store
        self.vector_index = vector_index
        self.config = config or MemoryConfig()
        self.namespace = namespace

    async def search(
        self,
        agent_id: str,
        query_vector: List[float],
        limit: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """Find an agent's memories nearest to a query vector.

        Args:
            agent_id: Owning agent
            query_vector: Query embedding
            limit: Maximum number of results (defaults to 100)

        Returns:
            Results in the index's ranked order
        """
        if limit is None:
            limit = self.config.default_search_limit
        if limit <= 0:
            return []
        matches = await self.vector_index.query(
            self.namespace, query_vector, {"agent_id": agent_id}, limit
        )
        memories = await hydrate(self.store, agent_id, matches)
        return [
            RetrievalResult(memory=memory, score=match.score)
            for memory, match in zip(memories, matches)
        ]


class RetrievalScorer:
    """Ranks candidates by a composite score and records the access."""

    def __init__(
        self,
        store: DocumentStore,
        vector_index: VectorIndex,
        config: Optional[MemoryConfig] = None,
        namespace: str = "embeddings",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.vector_index = vector_index
        self.config = config or MemoryConfig()
        self.namespace = namespace
        self.clock = clock

    async def access_memories(
        self,
        agent_id: str,
        query_vector: List[float],
        count: Optional[int] = None,
    ) -> List[RankedMemory]:
        """Return the agent's best memories for a query and mark them accessed.

        Over-fetches ``overfetch_factor * count`` neighbours, scores each by
        normalized relevance + importance + recency, and keeps the top
        ``count``. Ties keep the vector index's order.

        Args:
            agent_id: Owning agent
            query_vector: Query embedding
            count: Number of memories to return (defaults to 10)

        Returns:
            Ranked memories, best first
        """
        if count is None:
            count = self.config.default_access_count
        if count <= 0:
            return []
        matches = await self.vector_index.query(
            self.namespace,
            query_vector,
            {"agent_id": agent_id},
            self.config.overfetch_factor * count,
        )
        if not matches:
            return []

        memories = await hydrate(self.store, agent_id, matches)
        now = to_utc(self.clock())

        relevance = [match.score for match in matches]
        importance = [memory.importance for memory in memories]
        recency = await asyncio.gather(*(self._recency(memory, now) for memory in memories))
        scores = composite_scores(relevance, importance, recency)

        # sorted() is stable, so equal scores keep candidate order
        top = sorted(range(len(memories)), key=lambda i: scores[i], reverse=True)[:count]
        ranked = [
            RankedMemory(
                memory=memories[i],
                overall_score=scores[i],
                relevance=relevance[i],
                importance=importance[i],
                recency=recency[i],
            )
            for i in top
        ]

        await asyncio.gather(*(
            self.store.add_memory_access(result.memory.id, now) for result in ranked
        ))

        logger.info("memories_accessed",
                    agent_id=agent_id,
                    candidates=len(memories),
                    returned=len(ranked))
        return ranked

    async def _recency(self, memory: Memory, now: datetime) -> float:
        access = await self.store.get_latest_access(memory.id)
        last_seen = access.created_at if access else memory.created_at
        return recency_score(last_seen, now, self.config.recency_decay_rate)
