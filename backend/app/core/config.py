# backend/app/core/config.py

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # values come from .env first, then the process environment
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Cell Metrics Backend"

    # required, either in .env or the environment
    DATABASE_URL: str

    BACKEND_CORS_ORIGINS: str = ""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # console / json

    # attainment above this is treated as a data-entry error and clamped
    ATTAINMENT_CAP: float = 200.0

    BACKFILL_MAX_DAYS: int = 366


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
