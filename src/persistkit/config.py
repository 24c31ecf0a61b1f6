"""
Runtime settings for the persistkit CLI.

Values come from environment variables (or a local ``.env`` file) prefixed with
``PERSISTKIT_``.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    db_path: Path = Field(Path(".persistkit/store.db"), alias="PERSISTKIT_DB_PATH")
    log_level: str = Field("WARNING", alias="PERSISTKIT_LOG_LEVEL")
    json_logs: bool = Field(False, alias="PERSISTKIT_JSON_LOGS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
