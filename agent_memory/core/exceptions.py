"""Exceptions raised by the memory engine."""

from typing import Optional


class MemoryEngineError(Exception):
    """Base class for memory engine failures."""


class ConfigurationError(MemoryEngineError):
    """A required collaborator is missing or unreachable."""


class InvariantViolationError(MemoryEngineError):
    """Persisted state disagrees with what the engine expects to exist.

    Raised when the vector index returns an embedding id with no matching
    memory row, which means the index and the document store have drifted.
    """

    def __init__(self, message: str, agent_id: Optional[str] = None, embedding_id: Optional[str] = None):
        super().__init__(message)
        self.agent_id = agent_id
        self.embedding_id = embedding_id


class EmbeddingCountMismatchError(MemoryEngineError):
    """The embedding provider returned a different number of vectors than texts."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Embedding provider returned {actual} vectors for {expected} texts"
        )
        self.expected = expected
        self.actual = actual
