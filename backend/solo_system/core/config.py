from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SOLO_", env_file=".env", extra="ignore")

    app_name: str = "Solo System API"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./solo_system.db"
    history_limit: int = Field(default=90, ge=1)

    # Identifies the application, not the end user.
    app_api_key: str = Field(default="change-me-in-dev-only", min_length=16)

    cors_origins: list[str] = ["*"]

    api_base_url: str = "http://127.0.0.1:8000/api/v1"
    http_timeout_seconds: float = 5.0
    refresh_interval_seconds: float = Field(default=3.0, gt=0)
    reset_check_interval_seconds: float = Field(default=60.0, gt=0)


@lru_cache
def get_settings() -> Settings:
    return Settings()
