"""
Runtime configuration helpers for the MiniSocial service and client.

Loads DATABASE_URL and the sync tuning knobs from the .env file located in
the project root. The client only reads ``ClientSettings`` and never needs
the database URL.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class ClientSettings(BaseSettings):
    api_base_url: str = Field(default="http://localhost:8000", alias="API_BASE_URL")
    request_timeout: float = Field(default=10.0, alias="REQUEST_TIMEOUT")
    read_retries: int = Field(default=3, alias="READ_RETRIES")
    retry_backoff: float = Field(default=0.25, alias="RETRY_BACKOFF")
    trending_limit: int = Field(default=5, alias="TRENDING_LIMIT")
    suggestion_limit: int = Field(default=5, alias="SUGGESTION_LIMIT")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


class Settings(ClientSettings):
    # Required field, must come from .env
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="MiniSocial", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@lru_cache()
def get_client_settings() -> ClientSettings:
    return ClientSettings()


__all__ = ["ClientSettings", "Settings", "get_client_settings", "get_settings"]
