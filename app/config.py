# app/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env next to the project root (one level above app/)
ENV_FILE = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(ENV_FILE, override=False)  # pre-load into the process environment

# Fixed, not configurable: "/" always redirects here
DEFAULT_VERSION = "v4"

SEARCH_CACHE_TTL_S = 3600 * 24 * 30
FEED_CACHE_TTL_S = 3600
STATIC_MAX_AGE_S = 3600 * 24

DEFAULT_FEED_SIZE = "full"


class Settings(BaseSettings):
    # ---- App / Infra ----
    APP_VERSION: str = "4.0.0"
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=3000, ge=1, le=65535)
    LOG_LEVEL: str = "INFO"

    # ---- Response cache ----
    # Single connection string, e.g. redis://:password@host:6379/0.
    # Absent -> the response cache runs without a store.
    REDIS_SERVER: Optional[str] = None
    CACHE_KEY_PREFIX: str = "podpage:"

    # ---- Upstreams ----
    FETCH_TIMEOUT_S: float = Field(default=15.0, gt=0)
    SEARCH_API_URL: str = "https://itunes.apple.com/search"
    SEARCH_RESULT_LIMIT: int = Field(default=50, ge=1, le=200)
    USER_AGENT: str = "podpage/4.0 (+https://github.com/podpage)"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("REDIS_SERVER", mode="before")
    @classmethod
    def _check_redis_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            return None
        if not value.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_SERVER must be a redis://, rediss:// or unix:// URL")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and validate settings once per process."""
    return Settings()
