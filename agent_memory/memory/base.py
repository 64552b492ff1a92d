"""Collaborator contracts consumed by the memory engine.

The engine only talks to storage, the vector index and the model providers
through these interfaces, so tests can substitute in-process fakes.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from agent_memory.memory.models import (
    Embedding,
    Memory,
    MemoryAccess,
    MemoryType,
    Message,
    VectorItem,
    VectorMatch,
)


class EmbeddingProvider(ABC):
    """Batch text to vector embedding."""

    @abstractmethod
    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed texts, returning one vector per input in input order."""


class LanguageModelService(ABC):
    """Chat-style text completion."""

    @abstractmethod
    async def complete(self, messages: List[Dict[str, str]], max_tokens: int) -> str:
        """Return the assistant's reply to a list of role/content messages."""


class VectorIndex(ABC):
    """Namespace-scoped nearest-neighbour store with metadata filtering."""

    @abstractmethod
    async def upsert(self, namespace: str, items: List[VectorItem]) -> None:
        """Insert or replace items in a namespace."""

    @abstractmethod
    async def query(
        self,
        namespace: str,
        vector: List[float],
        filter: Dict[str, Any],
        top_k: int,
    ) -> List[VectorMatch]:
        """Return up to ``top_k`` matches ranked by descending similarity."""


class DocumentStore(ABC):
    """Persistent records for memories, embeddings, accesses and messages."""

    @abstractmethod
    async def insert(self, kind: str, record: Dict[str, Any]) -> str:
        """Insert a single record of the given kind and return its id."""

    @abstractmethod
    async def insert_memory_with_embedding(self, embedding: Embedding, memory: Memory) -> None:
        """Persist an embedding and the memory referencing it as one unit."""

    @abstractmethod
    async def get_embedding_by_text(self, text: str) -> Optional[Embedding]:
        """Return an embedding whose text matches exactly, if any."""

    @abstractmethod
    async def get_memory_by_embedding_id(self, agent_id: str, embedding_id: str) -> Optional[Memory]:
        """Return the most recent memory for an agent referencing an embedding."""

    @abstractmethod
    async def get_latest_access(self, memory_id: str) -> Optional[MemoryAccess]:
        """Return the most recent access event for a memory."""

    @abstractmethod
    async def list_memory_accesses(self, memory_id: str) -> List[MemoryAccess]:
        """Return all access events for a memory, oldest first."""

    @abstractmethod
    async def add_memory_access(self, memory_id: str, created_at: datetime) -> MemoryAccess:
        """Append an access event."""

    @abstractmethod
    async def get_latest_memory_of_type(
        self,
        agent_id: str,
        memory_type: MemoryType,
        created_after: Optional[datetime] = None,
        conversation_id: Optional[str] = None,
    ) -> Optional[Memory]:
        """Return the agent's newest memory with the given payload tag."""

    @abstractmethod
    async def get_conversation_messages(
        self,
        conversation_id: str,
        created_after: Optional[datetime] = None,
    ) -> List[Message]:
        """Return a conversation's messages, oldest first."""

    @abstractmethod
    async def add_message(self, message: Message) -> str:
        """Append a dialogue message."""
