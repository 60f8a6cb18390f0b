"""Configuration management using pydantic-settings."""

import warnings
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingProvider(str, Enum):
    """Embedding provider selection."""

    OPENAI = "openai"
    AZURE = "azure"


class EmbeddingSettings(BaseSettings):
    """Embedding configuration (provider-agnostic)."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    embedding_provider: EmbeddingProvider = Field(
        default=EmbeddingProvider.OPENAI,
        description="Embedding provider: openai or azure. Env var: EMBEDDING_PROVIDER",
    )

    # OpenAI (direct) embeddings
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for embeddings. Env var: OPENAI_API_KEY",
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Optional OpenAI base URL (advanced). Env var: OPENAI_BASE_URL",
    )

    # Azure OpenAI embeddings (optional)
    azure_openai_endpoint: Optional[str] = Field(
        default=None, description="Azure OpenAI endpoint URL. Env var: AZURE_OPENAI_ENDPOINT"
    )
    azure_openai_api_key: Optional[str] = Field(
        default=None, description="Azure OpenAI API key. Env var: AZURE_OPENAI_API_KEY"
    )
    azure_openai_api_version: str = Field(
        default="2024-02-15-preview",
        description="Azure OpenAI API version. Env var: AZURE_OPENAI_API_VERSION",
    )

    # Model configuration
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name (OpenAI direct). Env var: EMBEDDING_MODEL",
    )
    embedding_deployment_name: Optional[str] = Field(
        default=None,
        description="Embedding deployment name (Azure OpenAI). Env var: EMBEDDING_DEPLOYMENT_NAME",
    )
    embedding_dimension: Optional[int] = Field(
        default=1536,
        description="Embedding dimension D enforced by the vector store. Env var: EMBEDDING_DIMENSION",
    )
    embedding_batch_size: int = Field(
        default=100,
        description="Batch size for embedding generation. Env var: EMBEDDING_BATCH_SIZE",
    )
    embedding_timeout: float = Field(
        default=30.0,
        description="Embedding request timeout in seconds. Env var: EMBEDDING_TIMEOUT",
    )
    embedding_max_retries: int = Field(
        default=1,
        ge=1,
        description="Attempts per embedding request (1 = no automatic retry). Env var: EMBEDDING_MAX_RETRIES",
    )

    @property
    def is_configured(self) -> bool:
        """Check if the selected embedding provider is configured."""
        if self.embedding_provider == EmbeddingProvider.OPENAI:
            return bool(self.openai_api_key)
        if self.embedding_provider == EmbeddingProvider.AZURE:
            return bool(
                self.azure_openai_endpoint
                and self.azure_openai_api_key
                and self.embedding_deployment_name
            )
        return False

    @property
    def resolved_model_name(self) -> str:
        """Get the effective model/deployment name to use for embeddings."""
        if self.embedding_provider == EmbeddingProvider.AZURE:
            return self.embedding_deployment_name or ""
        return self.embedding_model


class ChunkingSettings(BaseSettings):
    """Text chunking configuration."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    chunk_size: int = Field(
        default=1000, description="Maximum chunk length. Env var: CHUNK_SIZE"
    )
    chunk_overlap: int = Field(
        default=200, description="Overlap carried between chunks. Env var: CHUNK_OVERLAP"
    )
    chunk_length_unit: str = Field(
        default="characters",
        description="Unit for chunk_size/chunk_overlap: characters or tokens. Env var: CHUNK_LENGTH_UNIT",
    )

    @field_validator("chunk_length_unit")
    @classmethod
    def validate_length_unit(cls, v: str) -> str:
        """Validate chunk length unit."""
        valid_units = ["characters", "tokens"]
        if v.lower() not in valid_units:
            raise ValueError(f"Chunk length unit must be one of {valid_units}")
        return v.lower()


class RetrievalSettings(BaseSettings):
    """Scoped semantic search defaults."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_", case_sensitive=False)

    top_k: int = Field(default=10, ge=1, description="Results per query. Env var: RETRIEVAL_TOP_K")
    min_similarity: float = Field(
        default=0.3,
        description="Minimum cosine similarity for a hit. Env var: RETRIEVAL_MIN_SIMILARITY",
    )


class VectorStoreBackend(str, Enum):
    """Vector store backend selection."""

    MEMORY = "memory"
    QDRANT = "qdrant"


class VectorStoreSettings(BaseSettings):
    """Vector store configuration."""

    model_config = SettingsConfigDict(env_prefix="VECTOR_STORE_", case_sensitive=False)

    backend: VectorStoreBackend = Field(
        default=VectorStoreBackend.MEMORY,
        description="Vector store backend: memory or qdrant. Env var: VECTOR_STORE_BACKEND",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_", case_sensitive=False)

    url: str = Field(
        default="http://localhost:6333", description="Qdrant connection URL"
    )
    api_key: Optional[str] = Field(
        default=None, description="Qdrant API key (for Qdrant Cloud). Env var: QDRANT_api_key"
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    collection_name: str = Field(
        default="document_copilot_chunks",
        description="Collection holding every scope's chunks. Env var: QDRANT_collection_name",
    )

    @property
    def is_cloud(self) -> bool:
        """Check if using Qdrant Cloud (has API key)."""
        return bool(self.api_key)


class LLMSettings(BaseSettings):
    """LLM configuration for model routing."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    default_model_name: str = Field(
        default="openai/gpt-4o-mini",
        description="Default LLM model name (LiteLLM format). Env var: DEFAULT_MODEL_NAME",
    )
    fallback_model_name: Optional[str] = Field(
        default="anthropic/claude-3-haiku",
        description="Fallback LLM model name (LiteLLM format). Env var: FALLBACK_MODEL_NAME",
    )
    enable_fallbacks: bool = Field(
        default=True,
        description="Enable automatic fallback to secondary model on failure. Env var: ENABLE_FALLBACKS",
    )
    llm_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for document generation. Env var: LLM_TEMPERATURE",
    )
    llm_max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per LLM call before falling back. Env var: LLM_MAX_RETRIES",
    )

    # Provider keys are read by LiteLLM from the environment as well
    openai_api_key: Optional[str] = Field(default=None, description="Env var: OPENAI_API_KEY")
    anthropic_api_key: Optional[str] = Field(default=None, description="Env var: ANTHROPIC_API_KEY")
    azure_api_key: Optional[str] = Field(default=None, description="Env var: AZURE_API_KEY")
    azure_api_base: Optional[str] = Field(default=None, description="Env var: AZURE_API_BASE")
    azure_api_version: Optional[str] = Field(default=None, description="Env var: AZURE_API_VERSION")

    @property
    def has_openai(self) -> bool:
        """Check if OpenAI is configured."""
        return bool(self.openai_api_key)

    @property
    def has_anthropic(self) -> bool:
        """Check if Anthropic is configured."""
        return bool(self.anthropic_api_key)

    @property
    def has_azure_openai(self) -> bool:
        """Check if Azure OpenAI is configured."""
        return bool(self.azure_api_key and self.azure_api_base)


class ServerSettings(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    host: str = Field(default="0.0.0.0", description="Server host. Env var: HOST")
    port: int = Field(default=8004, description="HTTP server port. Env var: PORT")
    reload: bool = Field(
        default=False, description="Enable auto-reload (development only). Env var: RELOAD"
    )


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(
        default="document-copilot", description="Application name. Env var: APP_NAME"
    )
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment. Env var: ENVIRONMENT",
    )
    debug: bool = Field(default=False, description="Enable debug mode. Env var: DEBUG")
    log_level: str = Field(
        default="INFO", description="Logging level. Env var: LOG_LEVEL"
    )
    max_file_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted upload in bytes. Env var: MAX_FILE_SIZE_BYTES",
    )
    cors_origins_str: Optional[str] = Field(
        default="*",
        description="Allowed CORS origins (comma-separated). Env var: CORS_ORIGINS_STR",
    )

    # Sub-settings
    embedding: Optional[EmbeddingSettings] = None
    chunking: Optional[ChunkingSettings] = None
    retrieval: Optional[RetrievalSettings] = None
    vector_store: Optional[VectorStoreSettings] = None
    qdrant: Optional[QdrantSettings] = None
    llm: Optional[LLMSettings] = None
    server: Optional[ServerSettings] = None

    @model_validator(mode="after")
    def initialize_nested_settings(self) -> "Settings":
        """Initialize nested settings to ensure they read from environment."""
        if self.embedding is None:
            self.embedding = EmbeddingSettings()
        if self.chunking is None:
            self.chunking = ChunkingSettings()
        if self.retrieval is None:
            self.retrieval = RetrievalSettings()
        if self.vector_store is None:
            self.vector_store = VectorStoreSettings()
        if self.qdrant is None:
            self.qdrant = QdrantSettings()
        if self.llm is None:
            self.llm = LLMSettings()
        if self.server is None:
            self.server = ServerSettings()
        return self

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, v):
        """Parse environment from string."""
        if isinstance(v, str):
            try:
                return Environment(v.lower())
            except ValueError:
                return Environment.DEVELOPMENT
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @property
    def cors_origins(self) -> List[str]:
        """Get CORS origins as a list."""
        if not self.cors_origins_str:
            return ["*"]
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def validate_configuration(self) -> None:
        """Warn about providers that are not configured yet."""
        if not self.embedding.is_configured:
            warnings.warn(
                "Embeddings are not configured. For OpenAI direct set EMBEDDING_PROVIDER=openai and OPENAI_API_KEY. "
                "For Azure set EMBEDDING_PROVIDER=azure and AZURE_OPENAI_ENDPOINT/AZURE_OPENAI_API_KEY/"
                "EMBEDDING_DEPLOYMENT_NAME.",
                UserWarning,
            )

    def validate_production_settings(self) -> None:
        """Validate that production settings are secure."""
        if self.is_production:
            if self.debug:
                raise ValueError("DEBUG must be False in production")

            if not self.embedding.is_configured:
                raise ValueError(
                    "Embeddings must be configured in production. "
                    "Set EMBEDDING_PROVIDER and the matching provider credentials."
                )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        # Validate configuration
        _settings.validate_configuration()
        # Validate production settings
        try:
            _settings.validate_production_settings()
        except ValueError as e:
            import logging

            logging.error(f"Configuration validation failed: {e}")
            if _settings.is_production:
                raise  # Fail fast in production
    return _settings
