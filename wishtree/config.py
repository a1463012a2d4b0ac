"""
Configuration and settings for the wish tree services.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the proxy and the session store."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # JSONBin document store (JSONBIN_API_KEY / JSONBIN_BIN_ID)
    jsonbin_api_key: Optional[str] = Field(default=None)
    jsonbin_bin_id: Optional[str] = Field(default=None)
    jsonbin_base_url: str = Field(default="https://api.jsonbin.io/v3")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # HTTP surface
    frontend_url: str = Field(default="http://localhost:3000")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_max_requests: int = Field(default=30, ge=1)
    log_level: str = Field(default="INFO")

    # Session store
    wishes_api_url: str = Field(default="http://localhost:3001/api")
    local_store_dir: str = Field(default="data/local_store")
    persist_debounce_seconds: float = Field(default=0.5, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
