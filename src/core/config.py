"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a local .env file).
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================
    # Application
    # ============================================
    app_name: str = "Legal RAG Service"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024, description="Largest accepted upload, in bytes"
    )

    # ============================================
    # Database (PostgreSQL)
    # ============================================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "legal_rag"

    # Explicit DATABASE_URL takes precedence if set
    database_url: str | None = None

    @property
    def get_database_url(self) -> str:
        """Get database URL - explicit or constructed from components."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # ============================================
    # Embeddings (OpenAI or Azure OpenAI)
    # ============================================
    openai_api_key: str = ""
    openai_base_url: str | None = None

    # Azure is used instead of OpenAI when an endpoint is configured
    azure_openai_endpoint: str = ""
    azure_openai_api_key: str = ""
    azure_openai_api_version: str = "2025-04-01-preview"

    embedding_model: str = Field(
        default="text-embedding-3-small", description="Embedding model name"
    )
    embedding_dimensions: int = Field(
        default=1536, description="Embedding vector dimensions (must match model)"
    )
    embedding_batch_size: int = Field(default=100, ge=1, description="Texts per API request")
    embedding_concurrency: int = Field(
        default=4, ge=1, description="Embedding requests in flight per batch call"
    )

    # ============================================
    # Chunking
    # ============================================
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)

    # ============================================
    # Retrieval
    # ============================================
    retrieval_top_k: int = Field(default=5, ge=1)
    retrieval_min_score: float = Field(default=0.7, ge=0.0, le=1.0)
    excerpt_length: int = Field(default=300, ge=1)
    context_max_chars: int = 8000

    # ============================================
    # Timeouts (seconds)
    # ============================================
    extraction_timeout_seconds: float = 120.0
    embedding_timeout_seconds: float = 60.0
    persistence_timeout_seconds: float = 30.0

    # ============================================
    # Logging
    # ============================================
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"

    @model_validator(mode="after")
    def check_chunk_overlap(self) -> "Settings":
        """Chunking must advance: overlap has to be smaller than the chunk size."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
