"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with RW_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="RW_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///./rankedwork.db"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Identity ---
    user_id_header: str = "X-User-Id"

    # --- Progression ---
    timezone: str = "UTC"  # local clock for XP bonuses and ledger columns
    history_page_size: int = 5
    max_live_engines: int = 1000  # soft cap on in-process engines (idle ones are evicted)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
