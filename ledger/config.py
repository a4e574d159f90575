"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Nothing here is secret: the ledger performs no authentication,
so every field has a usable default.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from ledger.config import settings
    print(settings.DATABASE_URL)
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the ledger service and its HTTP surface."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Personal Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    # SQLite for local use; swap to a PostgreSQL URL (asyncpg driver) for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/ledger.db"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["standard", "json"] = "standard"

    # --- Account service ---
    # Attempts at drawing an unused account number before giving up
    ACCOUNT_NUMBER_MAX_ATTEMPTS: int = Field(default=10, ge=1)
    # Attempts at an optimistic read-validate-write before a conflict propagates
    CONFLICT_MAX_RETRIES: int = Field(default=3, ge=1)
    # Run each operation inside a SAVEPOINT so balance updates and their
    # transaction records commit or roll back together
    ATOMIC_OPERATIONS: bool = True

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
