"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class VectorizationSettings(BaseSettings):
    """Switches for the vectorization pipeline."""

    model_config = SettingsConfigDict(env_prefix="VECTORIZATION_")

    enabled: bool = Field(
        default=False,
        description="Enable vectorization of tool responses",
    )
    storage_path: str = Field(
        default="data/geo_vectors",
        description="Directory for the local JSON record store",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    endpoint: str | None = Field(
        default=None,
        description="Full URL of the embedding endpoint",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token for the embedding endpoint",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    batch_size: int = Field(
        default=32,
        description="Batch size for embedding requests",
    )
    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL (':memory:' for an in-process store)",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    index_prefix: str = Field(
        default="geo",
        description="Prefix for per-data-type collections and record keys",
    )
    vector_dimension: int = Field(
        default=1536,
        gt=0,
        description="Dimension of every stored vector",
    )
    distance_metric: str = Field(
        default="cosine",
        description="Distance metric: cosine, l2 or ip",
    )
    knowledge_collection: str = Field(
        default="knowledge_base",
        description="Collection searched by the general-purpose retriever",
    )

    @field_validator("distance_metric")
    @classmethod
    def _check_metric(cls, value: str) -> str:
        metric = value.lower()
        if metric not in ("cosine", "l2", "ip"):
            raise ValueError(f"unsupported distance metric: {value}")
        return metric


class RetrievalSettings(BaseSettings):
    """Multi-query fusion configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_")

    max_results: int = Field(
        default=10,
        ge=1,
        description="Maximum fused results",
    )
    min_secondary: int = Field(
        default=2,
        ge=0,
        description="Secondary results to merge before stopping early",
    )
    geo_query_suffix: str = Field(
        default="location place nearby",
        description="Suffix appended to the geographic query rewrite",
    )
    top_k: int = Field(
        default=8,
        ge=1,
        description="Results requested from each retriever per query",
    )


class IngestionSettings(BaseSettings):
    """Background ingestion worker pool configuration."""

    model_config = SettingsConfigDict(env_prefix="INGESTION_")

    max_workers: int = Field(
        default=4,
        ge=1,
        description="Concurrent ingestion workers",
    )
    queue_size: int = Field(
        default=256,
        ge=1,
        description="Pending ingestion jobs before submissions are rejected",
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
    vectorization: VectorizationSettings = Field(default_factory=VectorizationSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Only the application edge (API app, scripts) should call this; library
    components take their settings as constructor arguments.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
