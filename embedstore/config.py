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


class DatabaseSettings(BaseSettings):
    """Storage engine configuration.

    The store runs on SQLite with the sqlite-vec extension.
    """

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    path: str = Field(
        default=":memory:",
        description="SQLite database file path (or :memory:)",
    )
    load_vector_extension: bool = Field(
        default=True,
        description="Load the sqlite-vec extension on connect",
    )


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="http://localhost:8080",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="BAAI/bge-large-en-v1.5",
        description="Embedding model name",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Bearer token for hosted embedding APIs",
    )
    batch_size: int = Field(
        default=32,
        description="Batch size for embedding requests",
    )
    dimensions: int | None = Field(
        default=None,
        description="Embedding dimensions (overrides the known-model table)",
    )
    timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds",
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

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
