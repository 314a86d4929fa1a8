from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str = ""
    supabase_service_key: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    extractor: str = "sample"  # "sample" or "claude"
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    default_locale: str = "fr-MA"
    redis_url: str = ""  # empty disables read caching
    cache_ttl_seconds: int = 30
    request_timeout: float = 10.0
    max_upload_bytes: int = 10 * 1024 * 1024
    log_level: str = "INFO"

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
