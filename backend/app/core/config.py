"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from typing import List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "PostPulse"
    APP_ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = True
    SECRET_KEY: str = Field(..., min_length=32)

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in v.split(",")]

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="PostgreSQL connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # JWT Configuration
    # ================================
    JWT_SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # ================================
    # Embedding Configuration
    # ================================
    EMBEDDING_PROVIDER: Literal["openai", "local"] = "openai"
    OPENAI_API_KEY: Optional[str] = None
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536
    EMBEDDING_REQUEST_TIMEOUT: float = 30.0

    # Local sentence-transformers model (EMBEDDING_PROVIDER=local)
    LOCAL_EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBEDDING_DEVICE: Literal["cpu", "cuda", "mps"] = "cpu"

    # Query embedding cache (bounded, entries expire)
    EMBEDDING_CACHE_SIZE: int = Field(default=2048, ge=1)
    EMBEDDING_CACHE_TTL_SECONDS: int = Field(default=86400, ge=1)

    # ================================
    # Embedding Backfill
    # ================================
    BACKFILL_DEFAULT_BATCH_SIZE: int = 10
    BACKFILL_MAX_BATCH_SIZE: int = 100
    BACKFILL_ITEM_DELAY_SECONDS: float = 0.1
    BACKFILL_BATCH_DELAY_SECONDS: float = 1.0
    BACKFILL_INTERVAL_MINUTES: int = 30

    # ================================
    # Search Configuration
    # ================================
    SEARCH_CANDIDATE_POOL_SIZE: int = 50
    SEARCH_DEFAULT_LIMIT: int = 5
    SEARCH_MAX_LIMIT: int = 50
    SEARCH_MAX_SUGGESTIONS: int = 5
    SEARCH_RECENT_QUERIES: int = 10

    # ================================
    # Insight Sync Configuration
    # ================================
    INSIGHT_SYNC_COOLDOWN_HOURS: int = 6
    INSIGHT_SYNC_LOOKBACK_DAYS: int = 30
    INSIGHT_SYNC_SWEEP_MINUTE: int = 15  # Minute of each hour for the due-sync sweep

    # Meta Graph API (Instagram / Facebook insights)
    META_GRAPH_API_URL: str = "https://graph.facebook.com"
    INSTAGRAM_GRAPH_API_URL: str = "https://graph.instagram.com"
    META_GRAPH_API_VERSION: str = "v18.0"
    META_REQUEST_TIMEOUT: int = 30

    # ================================
    # Celery Configuration
    # ================================
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    # Celery accept content as comma-separated string, we'll parse it
    CELERY_ACCEPT_CONTENT: str = "json"
    CELERY_TIMEZONE: str = "UTC"
    CELERY_ENABLE_UTC: bool = True

    @property
    def celery_accept_content_list(self) -> List[str]:
        """Parse CELERY_ACCEPT_CONTENT into a list."""
        return [item.strip() for item in self.CELERY_ACCEPT_CONTENT.split(",")]

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"


# Global settings instance
settings = Settings()
