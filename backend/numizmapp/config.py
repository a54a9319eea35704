"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Numizmapp Sync API"
    database_url: str = f"sqlite+pysqlite:///{_BACKEND_DIR / 'numizmapp.db'}"
    notification_fetch_limit: int = 20
    unread_badge_cap: int = 99
    compact_badge_cap: int = 9
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="NUMIZMAPP_",
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
