"""Vector index for the agent memory engine.

This service provides namespace-scoped nearest-neighbour search using ChromaDB.
Each namespace maps to one cosine-space collection; the memory engine stores
one entry per embedding, tagged with the owning agent for filtered queries.
"""

import asyncio
from typing import Any, Dict, List, Optional

import chromadb
from chromadb.config import Settings as ChromaSettings

from agent_memory.core.config import StorageConfig
from agent_memory.core.exceptions import ConfigurationError
from agent_memory.core.logging import get_logger
from agent_memory.memory.base import VectorIndex
from agent_memory.memory.models import VectorItem, VectorMatch

logger = get_logger(__name__)


class ChromaVectorIndex(VectorIndex):
    """ChromaDB-backed vector index.

    Features:
    - Persistent vector storage with ChromaDB
    - Cosine similarity search
    - Equality filtering on metadata
    """

    def __init__(
        self,
        persist_directory: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        """Initialize the vector index.

        Args:
            persist_directory: Directory for persistent storage
            client: Pre-built ChromaDB client (takes precedence)
        """
        if client is None and not persist_directory:
            raise ConfigurationError("ChromaVectorIndex needs a persist_directory or a client")

        self.persist_directory = persist_directory
        self.client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=ChromaSettings(
                anonymized_telemetry=False,
                allow_reset=True,
            ),
        )
        self._collections: Dict[str, Any] = {}

    @classmethod
    def from_settings(cls, storage: StorageConfig) -> "ChromaVectorIndex":
        """Build the index from storage configuration.

        Raises:
            ConfigurationError: If no persist directory is configured
        """
        if not storage.chroma_persist_directory:
            raise ConfigurationError(
                "Vector index is not configured. Set STORAGE_CHROMA_PERSIST_DIRECTORY."
            )
        return cls(persist_directory=storage.chroma_persist_directory)

    def _collection(self, namespace: str):
        if namespace not in self._collections:
            self._collections[namespace] = self.client.get_or_create_collection(
                name=namespace,
                metadata={"hnsw:space": "cosine"},
            )
        return self._collections[namespace]

    async def upsert(self, namespace: str, items: List[VectorItem]) -> None:
        """Insert or replace vectors in a namespace.

        Args:
            namespace: Collection name
            items: Entries to write
        """
        if not items:
            return

        collection = self._collection(namespace)
        await asyncio.to_thread(
            collection.upsert,
            ids=[item.id for item in items],
            embeddings=[item.vector for item in items],
            metadatas=[item.metadata for item in items],
        )
        logger.debug("vectors_upserted", namespace=namespace, count=len(items))

    async def query(
        self,
        namespace: str,
        vector: List[float],
        filter: Dict[str, Any],
        top_k: int,
    ) -> List[VectorMatch]:
        """Find the nearest neighbours of a vector.

        Args:
            namespace: Collection name
            vector: Query vector
            filter: Metadata equality filter, e.g. ``{"agent_id": "agent:1"}``
            top_k: Maximum number of matches

        Returns:
            Matches sorted by descending cosine similarity
        """
        collection = self._collection(namespace)

        # Check if collection is empty
        count = await asyncio.to_thread(collection.count)
        if count == 0 or top_k <= 0:
            return []

        results = await asyncio.to_thread(
            collection.query,
            query_embeddings=[vector],
            n_results=min(top_k, count),  # Don't request more than available
            where=self._where(filter),
            include=["distances"],
        )

        if not results["ids"] or not results["ids"][0]:
            return []

        # Cosine space reports distance = 1 - similarity
        matches = [
            VectorMatch(id=memory_id, score=1.0 - distance)
            for memory_id, distance in zip(results["ids"][0], results["distances"][0])
        ]
        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    @staticmethod
    def _where(filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Translate a flat equality filter into Chroma's where syntax."""
        if not filter:
            return None
        if len(filter) == 1:
            return dict(filter)
        return {"$and": [{key: value} for key, value in filter.items()]}
