"""Configuration management for the agent memory engine.

This module provides:
- Type-safe configuration with Pydantic
- Environment variable loading (one prefix per concern)
- Validation with descriptive messages
- A process-wide settings singleton
"""

from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """Language model and embedding provider configuration."""

    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server base URL"
    )
    chat_model: str = Field(
        default="llama3.2:3b",
        description="Model used for importance scoring and summaries"
    )
    embedding_model: str = Field(
        default="nomic-embed-text",
        description="Model used to embed memory descriptions"
    )
    temperature: float = Field(
        default=0.7,
        description="LLM temperature (0.0 = deterministic, 2.0 = creative)",
        ge=0.0,
        le=2.0
    )
    max_retries: int = Field(
        default=3,
        description="Maximum number of attempts per provider call",
        ge=1,
        le=10
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
        ge=1.0
    )

    @field_validator('ollama_base_url')
    def validate_ollama_url(cls, v):
        """Validate Ollama URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(
                f'ollama_base_url must start with http:// or https://, got: {v}'
            )
        return v.rstrip('/')

    model_config = {
        "env_prefix": "LLM_",
        "case_sensitive": False
    }


class MemoryConfig(BaseSettings):
    """Ingestion and retrieval tuning."""

    recency_decay_rate: float = Field(
        default=0.99,
        description="Per-hour multiplicative decay applied to the recency signal",
        gt=0.0,
        lt=1.0
    )
    overfetch_factor: int = Field(
        default=10,
        description="Candidates fetched per requested memory during ranked access",
        ge=1
    )
    default_search_limit: int = Field(
        default=100,
        description="Default number of neighbours returned by plain search",
        ge=1
    )
    default_access_count: int = Field(
        default=10,
        description="Default number of memories returned by ranked access",
        ge=1
    )
    default_importance: float = Field(
        default=5,
        description="Importance used when the model response cannot be parsed",
        ge=0,
        le=9
    )
    importance_max_tokens: int = Field(
        default=1,
        description="Token budget for the importance rating call",
        ge=1
    )
    summary_max_tokens: int = Field(
        default=500,
        description="Token budget for conversation summaries",
        ge=1
    )

    @field_validator('recency_decay_rate')
    def validate_decay_rate(cls, v):
        """A rate outside (0, 1) would not decay monotonically."""
        if not 0.0 < v < 1.0:
            raise ValueError(
                f'recency_decay_rate must be strictly between 0 and 1, got {v}'
            )
        return v

    model_config = {
        "env_prefix": "MEMORY_",
        "case_sensitive": False
    }


class StorageConfig(BaseSettings):
    """Document store and vector index locations."""

    sqlite_db_path: str = Field(
        default="./data/agent_memory.db",
        description="Path to the SQLite document store (':memory:' for tests)"
    )
    chroma_persist_directory: str = Field(
        default="./data/chroma",
        description="ChromaDB persistence directory (empty disables the vector index)"
    )
    vector_namespace: str = Field(
        default="embeddings",
        description="Vector index namespace holding memory embeddings"
    )

    @field_validator('vector_namespace')
    def validate_namespace(cls, v):
        """Chroma collection names need at least three characters."""
        if len(v) < 3:
            raise ValueError(
                f'vector_namespace must be at least 3 characters, got: {v!r}'
            )
        return v

    model_config = {
        "env_prefix": "STORAGE_",
        "case_sensitive": False
    }


class AppConfig(BaseSettings):
    """Application-level configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of console output"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional rotating log file path"
    )
    environment: str = Field(
        default="development",
        description="Environment name (development, production, testing)"
    )

    @field_validator('log_level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f'Invalid log_level: {v}. Must be one of: {", ".join(valid_levels)}'
            )
        return v_upper

    @field_validator('environment')
    def validate_environment(cls, v):
        """Validate environment name."""
        valid_envs = ['development', 'production', 'testing', 'staging']
        v_lower = v.lower()
        if v_lower not in valid_envs:
            raise ValueError(
                f'Invalid environment: {v}. Must be one of: {", ".join(valid_envs)}'
            )
        return v_lower

    model_config = {
        "env_prefix": "APP_",
        "case_sensitive": False
    }


class Settings(BaseSettings):
    """Main settings class combining all configurations.

    Examples:
        >>> settings = Settings()
        >>> settings.memory.recency_decay_rate
        0.99
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    def __init__(self, **kwargs):
        """Initialize settings, loading nested configs from the environment."""
        super().__init__(**kwargs)
        self.llm = kwargs.get("llm") or LLMConfig()
        self.memory = kwargs.get("memory") or MemoryConfig()
        self.storage = kwargs.get("storage") or StorageConfig()
        self.app = kwargs.get("app") or AppConfig()

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app.environment == "production"

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.environment == "development"

    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app.environment == "testing"

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as dictionary.

        Returns:
            Dictionary representation of settings
        """
        return {
            "llm": self.llm.model_dump(),
            "memory": self.memory.model_dump(),
            "storage": self.storage.model_dump(),
            "app": self.app.model_dump(),
        }


# Singleton instance
_settings: Optional[Settings] = None


def get_settings(reload: bool = False) -> Settings:
    """Get or create the settings instance.

    Args:
        reload: If True, re-read the environment

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None or reload:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (mainly for tests)."""
    global _settings
    _settings = None
