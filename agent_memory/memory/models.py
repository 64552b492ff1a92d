"""Data models for the agent memory engine.

This module defines the records the engine persists and returns:
- Embeddings, cached by exact text
- Memories with an importance score and a tagged payload
- Memory access events used to derive recency
- Dialogue messages consumed by the conversation summarizer
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from ulid import ULID


TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


class MemoryType(str, Enum):
    """Payload tags a memory can carry."""
    CONVERSATION = "conversation"
    RELATIONSHIP = "relationship"
    REFLECTION = "reflection"
    PLAN = "plan"


class ConversationData(BaseModel):
    """Summary of a conversation the agent took part in."""

    type: Literal["conversation"] = "conversation"
    conversation_id: str


class RelationshipData(BaseModel):
    """Opinion the agent holds about another agent."""

    type: Literal["relationship"] = "relationship"
    agent_id: str


class ReflectionData(BaseModel):
    """Higher-level insight derived from other memories."""

    type: Literal["reflection"] = "reflection"
    related_memory_ids: List[str] = Field(default_factory=list)


class PlanData(BaseModel):
    """Something the agent intends to do."""

    type: Literal["plan"] = "plan"


MemoryData = Annotated[
    Union[ConversationData, RelationshipData, ReflectionData, PlanData],
    Field(discriminator="type"),
]

memory_data_adapter: TypeAdapter = TypeAdapter(MemoryData)


def generate_identifier(kind: str) -> str:
    """Generate a time-ordered identifier of the form ``<kind>:<ULID>``."""
    return f"{kind}:{ULID()}"


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in UTC with fixed width so string order matches time order."""
    return to_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Inverse of :func:`format_timestamp`; always returns an aware UTC datetime."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class TimestampedModel(BaseModel):
    """Base for records whose ``created_at`` is kept in UTC."""

    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return to_utc(v)


class Embedding(TimestampedModel):
    """Vector representation of a text. Immutable once created."""

    id: str
    agent_id: str
    text: str
    embedding: List[float]

    model_config = {"frozen": True}


class Memory(TimestampedModel):
    """A stored observation owned by one agent."""

    id: str
    agent_id: str
    description: str
    embedding_id: str
    importance: float = Field(ge=0, le=9)
    data: MemoryData

    model_config = {"frozen": True}

    @property
    def memory_type(self) -> MemoryType:
        return MemoryType(self.data.type)


class MemoryAccess(TimestampedModel):
    """Append-only record of a memory being selected by ranked retrieval."""

    id: str
    memory_id: str


class Message(TimestampedModel):
    """A line of dialogue within a conversation."""

    id: str = Field(default_factory=lambda: generate_identifier("message"))
    conversation_id: str
    author_id: str
    author_name: str
    recipient_ids: List[str] = Field(default_factory=list)
    recipient_names: List[str] = Field(default_factory=list)
    text: str
    created_at: datetime = Field(default_factory=utc_now)

    def involves(self, agent_id: str) -> bool:
        """True if the agent sent the message or was addressed by it."""
        return self.author_id == agent_id or agent_id in self.recipient_ids


class MemoryDraft(BaseModel):
    """A memory waiting to be embedded, scored and committed."""

    agent_id: str
    description: str
    data: MemoryData
    importance: Optional[float] = Field(default=None, ge=0, le=9)


@dataclass
class VectorItem:
    """Entry written to the vector index."""

    id: str
    vector: List[float]
    metadata: Dict[str, Any]


@dataclass
class VectorMatch:
    """Nearest-neighbour hit returned by the vector index."""

    id: str
    score: float


@dataclass
class RetrievalResult:
    """Result from plain similarity search."""

    memory: Memory
    score: float  # Similarity reported by the vector index

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"memory": self.memory.model_dump(mode="json"), "score": self.score}


@dataclass
class RankedMemory:
    """Result from ranked access, with the raw signals behind the score."""

    memory: Memory
    overall_score: float
    relevance: float
    importance: float
    recency: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "memory": self.memory.model_dump(mode="json"),
            "overall_score": self.overall_score,
            "relevance": self.relevance,
            "importance": self.importance,
            "recency": self.recency,
        }
