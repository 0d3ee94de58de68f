"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./dev.db"

    # App settings
    app_name: str = "Rental Deal Underwriter"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Monte Carlo bounds (requests are clamped into these, not rejected)
    mc_min_runs: int = 100
    mc_max_runs: int = 50000
    mc_default_runs: int = 3000
    mc_min_years: int = 1
    mc_max_years: int = 50
    mc_default_years: int = 10
    mc_batch_size: int = 1000
    mc_seed: Optional[int] = None

    # Actuals ledger
    tx_max_import_rows: int = 5000

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
