"""Model provider services."""

from agent_memory.services.ollama_service import OllamaConfig, OllamaService

__all__ = ["OllamaConfig", "OllamaService"]
