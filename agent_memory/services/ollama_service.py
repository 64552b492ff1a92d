"""
Ollama Service for local model integration

Provides the two model-backed collaborators of the memory engine:
batched text embeddings and chat completions.
"""

from datetime import datetime
from typing import Dict, List, Optional

import httpx
from ollama import AsyncClient
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from agent_memory.core.config import LLMConfig
from agent_memory.core.logging import get_logger
from agent_memory.memory.base import EmbeddingProvider, LanguageModelService

logger = get_logger(__name__)


class OllamaConfig(BaseModel):
    """Configuration for Ollama service."""

    host: str = Field("http://localhost:11434", description="Ollama server host")
    chat_model: str = Field("llama3.2:3b", description="Chat completion model")
    embedding_model: str = Field("nomic-embed-text", description="Embedding model")
    temperature: float = Field(0.7, ge=0.0, le=2.0, description="Temperature for generation")
    timeout: float = Field(60.0, gt=0, description="Request timeout in seconds")
    max_retries: int = Field(3, ge=1, description="Attempts per request")

    @classmethod
    def from_llm_config(cls, llm: LLMConfig) -> "OllamaConfig":
        return cls(
            host=llm.ollama_base_url,
            chat_model=llm.chat_model,
            embedding_model=llm.embedding_model,
            temperature=llm.temperature,
            timeout=llm.timeout,
            max_retries=llm.max_retries,
        )


class OllamaService(EmbeddingProvider, LanguageModelService):
    """Service for interacting with the Ollama API."""

    def __init__(self, config: Optional[OllamaConfig] = None):
        """Initialize Ollama service."""
        self.config = config or OllamaConfig()
        self.async_client = AsyncClient(host=self.config.host, timeout=self.config.timeout)

        logger.info("ollama_service_initialized",
                    host=self.config.host,
                    chat_model=self.config.chat_model,
                    embedding_model=self.config.embedding_model)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            reraise=True,
        )

    async def check_availability(self) -> bool:
        """Check if the Ollama server is reachable."""
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.get(f"{self.config.host}/api/tags")
                if response.status_code == 200:
                    logger.info("ollama_available", host=self.config.host)
                    return True
        except httpx.HTTPError as e:
            logger.warning("ollama_not_available", host=self.config.host, error=str(e))
        return False

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts in a single request.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in input order
        """
        if not texts:
            return []

        start_time = datetime.now()
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self.async_client.embed(
                        model=self.config.embedding_model,
                        input=texts,
                    )
        except Exception as e:
            logger.error("embedding_failed",
                         model=self.config.embedding_model,
                         count=len(texts),
                         error=str(e))
            raise

        embeddings = [list(vector) for vector in response["embeddings"]]
        logger.info("embeddings_generated",
                    model=self.config.embedding_model,
                    count=len(embeddings),
                    time_ms=(datetime.now() - start_time).total_seconds() * 1000)
        return embeddings

    async def complete(self, messages: List[Dict[str, str]], max_tokens: int) -> str:
        """Chat with Ollama and return the reply text.

        Args:
            messages: Conversation as role/content dicts
            max_tokens: Maximum tokens to generate

        Returns:
            Assistant reply content
        """
        options = {
            "temperature": self.config.temperature,
            "num_predict": max_tokens,
        }

        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self.async_client.chat(
                        model=self.config.chat_model,
                        messages=messages,
                        options=options,
                    )
        except Exception as e:
            logger.error("chat_failed",
                         model=self.config.chat_model,
                         error=str(e))
            raise

        content = response["message"]["content"]
        logger.info("chat_complete",
                    model=self.config.chat_model,
                    messages_count=len(messages),
                    response_length=len(content))
        return content
