"""
Settings for the client controllers.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Environment-backed settings (``SITE_*``) for the client."""

    model_config = SettingsConfigDict(
        env_prefix="SITE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    base_url: str = Field(default="http://localhost:3000")
    session_file: Path = Field(default=Path.home() / ".site_session.json")

    # Entries fetched per list page.
    page_limit: int = Field(default=3, ge=1)
    search_delay: float = Field(default=0.3, ge=0)
    preview_chars: int = Field(default=220, ge=1)


@lru_cache(maxsize=1)
def get_client_settings() -> ClientSettings:
    return ClientSettings()
