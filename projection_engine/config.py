"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    # App settings
    app_name: str = "Projection Engine"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Value of one unit of each currency in the base currency, e.g.
    # CURRENCY_RATES='{"EUR": 1.08, "GBP": 1.27}'
    currency_rates: Dict[str, float] = {}

    model_config = SettingsConfigDict(
        env_file=get_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
