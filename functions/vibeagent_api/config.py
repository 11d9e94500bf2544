"""
Configuration and settings for the API service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the API service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Which DocumentStore implementation to build.
    store_backend: Literal["memory", "firestore", "sql"] = Field(default="memory")

    # SQL store (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Firestore; falls back to the Application Default Credentials project.
    firestore_project_id: Optional[str] = Field(default=None)

    # Upper bound on concurrent household reads in the user detail view.
    household_fetch_workers: int = Field(default=8, ge=1)

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
