"""Memory ingestion pipeline.

Turns memory drafts into committed Memory + Embedding pairs:

1. Look up each description in the embedding cache.
2. Embed the distinct cache misses in one provider call.
3. Ask the language model to rate importance where the draft has none.
4. Commit each pair atomically to the document store.
5. Upsert the vectors into the index once every commit has succeeded.
"""

import asyncio
import math
import string
from datetime import datetime
from typing import Callable, List, Optional

from agent_memory.core.config import MemoryConfig
from agent_memory.core.exceptions import EmbeddingCountMismatchError
from agent_memory.core.logging import get_logger, log_exception
from agent_memory.memory.base import (
    DocumentStore,
    EmbeddingProvider,
    LanguageModelService,
    VectorIndex,
)
from agent_memory.memory.embedding_cache import EmbeddingCache
from agent_memory.memory.models import (
    Embedding,
    Memory,
    MemoryDraft,
    VectorItem,
    generate_identifier,
    to_utc,
    utc_now,
)

logger = get_logger(__name__)

IMPORTANCE_PROMPT = (
    'How important is this? Answer on a scale of 0 to 9. '
    'Respond with number only, e.g. "5"'
)


def parse_importance(raw: str) -> Optional[float]:
    """Extract an importance rating from a model response.

    Takes the first ASCII digit in the response. Failing that, tries to read
    the whole response as a number, clamped to [0, 9].

    Args:
        raw: Model output

    Returns:
        Importance, or None if nothing usable was found
    """
    for char in raw:
        if char in string.digits:
            return float(char)

    try:
        value = float(raw.strip())
    except ValueError:
        return None

    if not math.isfinite(value):
        return None
    return min(max(value, 0.0), 9.0)


class IngestionPipeline:
    """Embeds, scores and commits new memories."""

    def __init__(
        self,
        store: DocumentStore,
        vector_index: VectorIndex,
        embedder: EmbeddingProvider,
        llm: LanguageModelService,
        cache: Optional[EmbeddingCache] = None,
        config: Optional[MemoryConfig] = None,
        namespace: str = "embeddings",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.vector_index = vector_index
        self.embedder = embedder
        self.llm = llm
        self.cache = cache or EmbeddingCache(store)
        self.config = config or MemoryConfig()
        self.namespace = namespace
        self.clock = clock

    async def add_memories(self, drafts: List[MemoryDraft]) -> List[str]:
        """Commit drafts as memories and index their embeddings.

        A store failure stops the batch at the failing pair, which leaves no
        rows behind. Pairs committed before it stay durable and are indexed
        before the error is re-raised; later drafts are not attempted.

        Args:
            drafts: Memories to add

        Returns:
            Ids of the committed memories, aligned with ``drafts``

        Raises:
            EmbeddingCountMismatchError: If the provider returns the wrong
                number of vectors; nothing is committed in that case
        """
        if not drafts:
            return []

        descriptions = [draft.description for draft in drafts]
        vectors = await self._embed(descriptions)
        importances = await asyncio.gather(*(self._importance(draft) for draft in drafts))

        committed: List[Memory] = []
        for draft, vector, importance in zip(drafts, vectors, importances):
            created_at = to_utc(self.clock())
            embedding = Embedding(
                id=generate_identifier("embedding"),
                agent_id=draft.agent_id,
                text=draft.description,
                embedding=vector,
                created_at=created_at,
            )
            memory = Memory(
                id=generate_identifier("memory"),
                agent_id=draft.agent_id,
                description=draft.description,
                embedding_id=embedding.id,
                importance=importance,
                data=draft.data,
                created_at=created_at,
            )
            try:
                await self.store.insert_memory_with_embedding(embedding, memory)
            except Exception as e:
                log_exception(logger, "memory_commit_failed", e,
                              agent_id=draft.agent_id,
                              committed=len(committed))
                await self._index(committed, vectors)
                raise
            committed.append(memory)

        await self._index(committed, vectors)

        logger.info("memories_added",
                    count=len(committed),
                    agents=sorted({memory.agent_id for memory in committed}))
        return [memory.id for memory in committed]

    async def _index(self, committed: List[Memory], vectors: List[List[float]]) -> None:
        """Upsert index entries for committed memories, keyed by embedding id."""
        if not committed:
            return
        # committed is a prefix of the batch, so it lines up with vectors
        await self.vector_index.upsert(
            self.namespace,
            [
                VectorItem(
                    id=memory.embedding_id,
                    vector=vector,
                    metadata={"agent_id": memory.agent_id, "memory_id": memory.id},
                )
                for memory, vector in zip(committed, vectors)
            ],
        )

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        """Resolve a vector for every text, embedding each distinct miss once."""
        cached = await self.cache.lookup(texts)

        # dict.fromkeys keeps first-seen order while dropping duplicates
        missing = list(dict.fromkeys(
            text for text, vector in zip(texts, cached) if vector is None
        ))
        computed = {}
        if missing:
            vectors = await self.embedder.embed_batch(missing)
            if len(vectors) != len(missing):
                raise EmbeddingCountMismatchError(expected=len(missing), actual=len(vectors))
            computed = dict(zip(missing, vectors))

        logger.debug("embeddings_resolved",
                     total=len(texts),
                     cache_misses=len(missing))
        return [
            vector if vector is not None else computed[text]
            for text, vector in zip(texts, cached)
        ]

    async def _importance(self, draft: MemoryDraft) -> float:
        if draft.importance is not None:
            return draft.importance

        raw = await self.llm.complete(
            messages=[
                {"role": "user", "content": draft.description},
                {"role": "user", "content": IMPORTANCE_PROMPT},
            ],
            max_tokens=self.config.importance_max_tokens,
        )
        importance = parse_importance(raw)
        if importance is None:
            logger.warning("importance_parse_failed",
                           response=raw,
                           default=self.config.default_importance)
            return float(self.config.default_importance)
        return importance
