"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackend(str, Enum):
    """Plot store implementation to use."""

    QDRANT = "qdrant"
    MEMORY = "memory"


class ResultOrder(str, Enum):
    """Ordering of combined search results.

    FILTER keeps the order of the metadata query. SIMILARITY keeps the
    similarity ranking of the semantic query.
    """

    FILTER = "filter"
    SIMILARITY = "similarity"


class LLMSettings(BaseSettings):
    """LLM service configuration.

    Used to interpret natural-language plot queries.
    Any OpenAI-compatible chat completions endpoint works.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="http://localhost:11434/v1",
        description="LLM API base URL (Ollama default)",
    )
    model: str = Field(
        default="llama3:8b",
        description="Model name to use for query interpretation",
    )
    api_key: SecretStr = Field(
        default=SecretStr("not-required"),
        description="API key (not required for Ollama)",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=512,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.0,
        description="Sampling temperature (lower = more deterministic)",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="http://localhost:8080",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    batch_size: int = Field(
        default=32,
        description="Batch size for embedding requests",
    )
    dimensions: int | None = Field(
        default=None,
        description="Expected vector width; enforced when set",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    scroll_batch_size: int = Field(
        default=256,
        ge=1,
        description="Page size used when scrolling filter results",
    )


class StoreSettings(BaseSettings):
    """Plot store selection."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: StoreBackend = Field(
        default=StoreBackend.QDRANT,
        description="Plot store backend",
    )


class SearchSettings(BaseSettings):
    """Search behaviour configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    collection: str = Field(
        default="land_memories",
        description="Collection holding the plot records",
    )
    similarity_threshold: float = Field(
        default=0.75,
        ge=-1.0,
        le=1.0,
        description="Minimum similarity score for semantic candidates",
    )
    match_count: int = Field(
        default=20,
        ge=1,
        description="Maximum semantic candidates and default result limit",
    )
    result_order: ResultOrder = Field(
        default=ResultOrder.FILTER,
        description="Ordering of combined search results",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
