"""Long-term memory for simulated agents.

This package provides:
- Ingestion of observations with cached embeddings and model-rated importance
- Similarity search over an agent's memories
- Ranked retrieval by relevance, importance and recency
- Conversation summarization into new memories
"""

from agent_memory.memory.models import (
    ConversationData,
    Embedding,
    Memory,
    MemoryAccess,
    MemoryDraft,
    MemoryType,
    Message,
    PlanData,
    RankedMemory,
    ReflectionData,
    RelationshipData,
    RetrievalResult,
)
from agent_memory.memory.embedding_cache import EmbeddingCache
from agent_memory.memory.ingestion import IngestionPipeline
from agent_memory.memory.retrieval import MemorySearch, RetrievalScorer, filter_memories_by_type
from agent_memory.memory.conversation import ConversationSummarizer
from agent_memory.memory.memory_db import MemoryDB, create_memory_db

__all__ = [
    "ConversationData",
    "Embedding",
    "Memory",
    "MemoryAccess",
    "MemoryDraft",
    "MemoryType",
    "Message",
    "PlanData",
    "RankedMemory",
    "ReflectionData",
    "RelationshipData",
    "RetrievalResult",
    "EmbeddingCache",
    "IngestionPipeline",
    "MemorySearch",
    "RetrievalScorer",
    "filter_memories_by_type",
    "ConversationSummarizer",
    "MemoryDB",
    "create_memory_db",
]
