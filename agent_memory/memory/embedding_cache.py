"""Embedding cache backed by the document store.

Every embedding the engine computes is persisted alongside its memory, so the
embeddings table doubles as the cache. Lookup is by exact text only: a
paraphrase of a stored description is a miss.
"""

from typing import Dict, List, Optional

from agent_memory.core.logging import get_logger
from agent_memory.memory.base import DocumentStore

logger = get_logger(__name__)


class EmbeddingCache:
    """Exact-text lookup of previously computed embeddings."""

    def __init__(self, store: DocumentStore):
        self.store = store

        # Track cache hits/misses
        self.hits = 0
        self.misses = 0

    async def lookup(self, texts: List[str]) -> List[Optional[List[float]]]:
        """Return the stored vector for each text, or None on a miss.

        Args:
            texts: Texts to look up

        Returns:
            List aligned with ``texts``
        """
        results: List[Optional[List[float]]] = []
        for text in texts:
            cached = await self.store.get_embedding_by_text(text)
            if cached is not None:
                self.hits += 1
                results.append(cached.embedding)
            else:
                self.misses += 1
                results.append(None)

        logger.debug("embedding_cache_lookup",
                     texts=len(texts),
                     hits=sum(1 for r in results if r is not None))
        return results

    def get_stats(self) -> Dict[str, float]:
        """Get cache statistics."""
        total = self.hits + self.misses
        hit_rate = self.hits / total if total > 0 else 0.0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "total": total,
            "hit_rate": hit_rate,
        }
