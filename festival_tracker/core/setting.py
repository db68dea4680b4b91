"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Supports multiple environments (production, staging, dev)
- Defaults to SQLite (file-based), the tracker is a single-node logger
- Operator-controlled redirect settings are NOT here, they live in the
  database (see services/option_store.py) so they can change at runtime
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]



class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Configuration
    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )

    # Database Configuration
    # For SQLite: sqlite+aiosqlite:///./festival_tracker.db (default)
    # For an in-memory database: sqlite+aiosqlite:// (tests)
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./festival_tracker.db",
        description="Database connection string"
    )

    # Tracking Configuration
    TRACKING_PARAM: str = Field(
        default="id",
        description="Query parameter carrying the festival ID"
    )
    TRACKING_RATE_LIMIT: str = Field(
        default="10/minute",
        description="Accepted tracking requests per IP (limits syntax, rolling window)"
    )
    VISITOR_HASH_SECRET: str = Field(
        default="",
        description="Key for the day-rotating visitor hash (empty = unkeyed)"
    )

    # Dashboard Configuration
    ADMIN_TOKEN: Optional[str] = Field(
        default=None,
        description="Token required in X-Admin-Token for operator endpoints (unset = deny all)"
    )
    TOP_IDS_LIMIT: int = Field(
        default=5,
        description="Number of festival IDs shown when not showing all"
    )
    STATS_WINDOW_DAYS: int = Field(
        default=7,
        description="Number of days in the daily statistics window"
    )
    STATS_QUERY_TIMEOUT: float = Field(
        default=10.0,
        description="Seconds before a dashboard query is abandoned"
    )

    # Cache Configuration
    LIFETIME_CACHE_TTL: int = Field(
        default=3600,
        description="TTL in seconds for lifetime totals, rollups and future-data checks"
    )
    TODAY_CACHE_TTL: int = Field(
        default=900,
        description="TTL in seconds for today's call count"
    )


settings = Settings()
