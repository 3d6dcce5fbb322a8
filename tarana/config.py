"""Configuration settings using Pydantic"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Embedding provider (Gemini embeddings are 768-dimensional)
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    embedding_model: str = Field(default="models/text-embedding-004", alias="EMBEDDING_MODEL")
    embedding_max_attempts: int = Field(default=1, ge=1, alias="EMBEDDING_MAX_ATTEMPTS")  # 1 = fail fast
    embedding_retry_base_delay: float = Field(default=0.5, ge=0, alias="EMBEDDING_RETRY_BASE_DELAY")

    # Supabase Configuration (service-role key, server side only)
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(default=None, alias="SUPABASE_SERVICE_ROLE_KEY")

    # Vector search cache
    vector_cache_ttl_seconds: float = Field(default=600.0, gt=0, alias="VECTOR_CACHE_TTL_SECONDS")  # 10 minutes
    vector_cache_max_entries: int = Field(default=50, ge=1, alias="VECTOR_CACHE_MAX_ENTRIES")

    # Peak hours are declared in the destination's local time
    local_timezone: str = Field(default="Asia/Manila", alias="LOCAL_TIMEZONE")

    # Maintenance endpoint
    reindex_secret: Optional[str] = Field(default=None, alias="REINDEX_SECRET")

    # Application Settings
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    request_timeout_seconds: int = Field(default=60, alias="REQUEST_TIMEOUT_SECONDS")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
