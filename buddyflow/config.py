"""Application configuration."""

import logging
import sys
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./buddyflow.db"

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    # Assignments
    DEFAULT_DEADLINE_BUSINESS_DAYS: int = 7
    MAX_BUDDIES: int = 5
    MAX_ACTIVE_ASSIGNMENTS: int = 5
    MAX_DEADLINE_EXTENSION_DAYS: int = 365

    # Side channels (notifications, achievements)
    SIDE_CHANNEL_TIMEOUT_SECONDS: float = 2.0

    # Snapshots
    SNAPSHOT_VERSION: str = "1.0.0"

    @field_validator(
        "DEFAULT_DEADLINE_BUSINESS_DAYS",
        "MAX_BUDDIES",
        "MAX_ACTIVE_ASSIGNMENTS",
        "MAX_DEADLINE_EXTENSION_DAYS",
        "SIDE_CHANNEL_TIMEOUT_SECONDS",
        mode="after",
    )
    @classmethod
    def require_positive(cls, value: float) -> float:
        """Reject zero and negative limits."""
        if value <= 0:
            msg = "must be positive"
            raise ValueError(msg)
        return value

    @field_validator("SNAPSHOT_VERSION", mode="after")
    @classmethod
    def strip_snapshot_version(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "SNAPSHOT_VERSION cannot be empty"
            raise ValueError(msg)
        return value


def configure_logging(environment: str = "development") -> None:
    """Configure structured logging with structlog."""
    # JSON output in production, console output otherwise
    use_json = environment == "production"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if environment == "development" else logging.INFO,
    )

    processors: list[Callable[..., Any]] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if use_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
