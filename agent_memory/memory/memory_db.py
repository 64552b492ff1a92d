"""Memory engine facade.

``MemoryDB`` holds explicit references to its collaborators and exposes the
four public operations: ``search``, ``access_memories``, ``add_memories`` and
``remember_conversation``.
"""

from datetime import datetime
from typing import Callable, List, Optional

from agent_memory.core.config import MemoryConfig, Settings, get_settings
from agent_memory.core.exceptions import ConfigurationError
from agent_memory.core.logging import agent_context, get_logger, setup_logging_from_config
from agent_memory.memory.base import (
    DocumentStore,
    EmbeddingProvider,
    LanguageModelService,
    VectorIndex,
)
from agent_memory.memory.conversation import ConversationSummarizer
from agent_memory.memory.embedding_cache import EmbeddingCache
from agent_memory.memory.ingestion import IngestionPipeline
from agent_memory.memory.models import MemoryDraft, RankedMemory, RetrievalResult, utc_now
from agent_memory.memory.retrieval import MemorySearch, RetrievalScorer

logger = get_logger(__name__)


class MemoryDB:
    """Long-term memory for simulated agents.

    Examples:
        >>> db = MemoryDB(store, index, embedder, llm)
        >>> await db.add_memories([MemoryDraft(agent_id="agent:1", description="...", data=PlanData())])
        >>> ranked = await db.access_memories("agent:1", query_vector, count=5)
    """

    def __init__(
        self,
        store: DocumentStore,
        vector_index: VectorIndex,
        embedder: EmbeddingProvider,
        llm: LanguageModelService,
        config: Optional[MemoryConfig] = None,
        namespace: str = "embeddings",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Wire the engine to its collaborators.

        Raises:
            ConfigurationError: If any collaborator is missing
        """
        collaborators = {
            "store": store,
            "vector_index": vector_index,
            "embedder": embedder,
            "llm": llm,
        }
        missing = [name for name, value in collaborators.items() if value is None]
        if missing:
            raise ConfigurationError(
                f"MemoryDB is missing required collaborators: {', '.join(missing)}"
            )

        self.store = store
        self.vector_index = vector_index
        self.config = config or MemoryConfig()
        clock = clock or utc_now

        self.cache = EmbeddingCache(store)
        self.ingestion = IngestionPipeline(
            store, vector_index, embedder, llm,
            cache=self.cache, config=self.config, namespace=namespace, clock=clock,
        )
        self.searcher = MemorySearch(store, vector_index, config=self.config, namespace=namespace)
        self.scorer = RetrievalScorer(
            store, vector_index, config=self.config, namespace=namespace, clock=clock,
        )
        self.summarizer = ConversationSummarizer(store, llm, self.ingestion, config=self.config)

    async def search(
        self, agent_id: str, query_vector: List[float], limit: Optional[int] = None
    ) -> List[RetrievalResult]:
        """Find memories by similarity without marking them accessed."""
        with agent_context(agent_id, operation="search"):
            return await self.searcher.search(agent_id, query_vector, limit)

    async def access_memories(
        self, agent_id: str, query_vector: List[float], count: Optional[int] = None
    ) -> List[RankedMemory]:
        """Rank memories by relevance, importance and recency and mark them accessed."""
        with agent_context(agent_id, operation="access_memories"):
            return await self.scorer.access_memories(agent_id, query_vector, count)

    async def add_memories(self, drafts: List[MemoryDraft]) -> List[str]:
        """Embed, score and commit new memories."""
        return await self.ingestion.add_memories(drafts)

    async def remember_conversation(
        self,
        agent_id: str,
        agent_identity: str,
        conversation_id: str,
        last_spoke_at: Optional[datetime] = None,
        agent_name: Optional[str] = None,
    ) -> bool:
        """Summarize unremembered dialogue into a conversation memory."""
        with agent_context(agent_id, operation="remember_conversation", conversation_id=conversation_id):
            return await self.summarizer.remember_conversation(
                agent_id, agent_identity, conversation_id, last_spoke_at, agent_name=agent_name
            )


async def create_memory_db(settings: Optional[Settings] = None, verify: bool = True) -> MemoryDB:
    """Build a MemoryDB backed by SQLite, ChromaDB and Ollama.

    Args:
        settings: Settings to use (defaults to the global settings)
        verify: Fail fast if the Ollama server is unreachable

    Returns:
        Ready-to-use MemoryDB

    Raises:
        ConfigurationError: If the vector index is not configured or Ollama is down
    """
    from agent_memory.database.sqlite_manager import SQLiteManager
    from agent_memory.memory.vector_store import ChromaVectorIndex
    from agent_memory.services.ollama_service import OllamaConfig, OllamaService

    settings = settings or get_settings()
    setup_logging_from_config(settings.app)

    vector_index = ChromaVectorIndex.from_settings(settings.storage)
    ollama = OllamaService(OllamaConfig.from_llm_config(settings.llm))
    if verify and not await ollama.check_availability():
        raise ConfigurationError(
            f"Ollama server is not reachable at {settings.llm.ollama_base_url}"
        )

    store = SQLiteManager(db_path=settings.storage.sqlite_db_path)
    await store.initialize()

    logger.info("memory_db_created",
                db_path=settings.storage.sqlite_db_path,
                namespace=settings.storage.vector_namespace)
    return MemoryDB(
        store,
        vector_index,
        embedder=ollama,
        llm=ollama,
        config=settings.memory,
        namespace=settings.storage.vector_namespace,
    )
