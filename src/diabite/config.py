"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    storage_backend: str = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    offline_db_path: str | None = None
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "DiaBite/1.0 (student@example.com)"
    fdc_api_key: str = ""
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    cache_ttl_days: int = 30
    max_cache_size: int = 500
    max_history_size: int = 300
    rate_limit_max_attempts: int = 3
    rate_limit_base_delay_ms: int = 250
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def uses_supabase(self) -> bool:
        """Whether persistent stores live in Supabase."""
        return self.storage_backend.strip().lower() == "supabase"
