"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from prep_engine.config import settings

    # Access settings
    db_url = settings.POSTGRES_URL
    header = settings.STUDENT_ID_HEADER
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    APP_NAME: str = "Adaptive Prep Engine"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "prepengine"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "prepengine"

    @property
    def POSTGRES_URL(self) -> str:
        """Async PostgreSQL connection URL."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Identity - the auth collaborator forwards the student id in this header
    STUDENT_ID_HEADER: str = "X-Student-Id"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Session engine
    # Upper bound on in-process orchestrators kept by the session registry.
    # Least recently used sessions are evicted; the store stays authoritative.
    SESSION_REGISTRY_MAX_SESSIONS: int = 1000
    # Per-subscriber buffer for the session event stream
    SESSION_EVENT_QUEUE_SIZE: int = 100


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


@lru_cache()
def load_yaml_config() -> dict[str, Any]:
    """Load application configuration from config/default.yaml."""
    config_path = Path(__file__).parent.parent.parent / "config" / "default.yaml"

    if not config_path.exists():
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


yaml_config: dict[str, Any] = load_yaml_config()
