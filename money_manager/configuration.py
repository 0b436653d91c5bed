"""Mini README: Centralised configuration for the Money Manager ledger API.

Structure:
    * LedgerSettings - Pydantic model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Import ``get_settings`` to read ``MONEY_MANAGER_*`` environment variables
    (or a local ``.env`` file). The listening port and the database URL fall
    back to local defaults so the service starts without any configuration.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class LedgerSettings(BaseSettings):
    """Runtime configuration for the ledger service."""

    environment: str = Field(
        "development",
        description="Environment label controlling reload and logging defaults.",
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface the HTTP API binds to.",
    )
    interface_port: int = Field(
        5000,
        description="Port the HTTP API listens on.",
        ge=1,
        le=65535,
    )
    database_url: str = Field(
        "sqlite:///money_manager.db",
        description="SQLAlchemy URL of the transaction store.",
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser.",
    )
    log_level: str = Field(
        "INFO",
        description="Root logging level applied when the server starts.",
    )

    class Config:
        env_prefix = "MONEY_MANAGER_"
        env_file = ".env"
        case_sensitive = False

    @validator("database_url")
    def _require_database_url(cls, value: str) -> str:
        """Reject blank URLs so the store never connects to an empty target."""

        value = value.strip()
        if not value:
            raise ValueError("database_url must not be empty")
        return value

    @validator("log_level")
    def _normalise_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache()
def get_settings() -> LedgerSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return LedgerSettings()
