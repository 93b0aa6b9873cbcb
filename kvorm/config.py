"""
Configuration for kvorm.

All configuration is read from environment variables with the KVORM_
prefix (for example KVORM_REDIS_HOST). Defaults suit local development.

Invariants:
    - The Redis password is a SecretStr and is never logged
    - validate_settings() rejects inconsistent values before connecting

How to change safely:
    - Add new settings with defaults that keep existing deployments working
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Supported store backends."""

    REDIS = "redis"
    MEMORY = "memory"


class Settings(BaseSettings):
    """kvorm configuration."""

    store_backend: StoreBackend = Field(default=StoreBackend.REDIS)

    # Redis connection
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_db: int = Field(default=0)
    redis_password: SecretStr | None = Field(default=None)
    redis_max_connections: int = Field(default=10, description="Connection pool size")
    redis_socket_timeout: float | None = Field(default=5.0, description="Per-command timeout (s)")
    redis_socket_connect_timeout: float | None = Field(default=5.0)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", description="json or text")

    model_config = SettingsConfigDict(env_prefix="KVORM_")

    def validate_settings(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.store_backend == StoreBackend.REDIS:
            if not self.redis_host:
                raise ValueError("KVORM_REDIS_HOST is required when KVORM_STORE_BACKEND=redis")
            if not 0 < self.redis_port < 65536:
                raise ValueError(f"KVORM_REDIS_PORT out of range: {self.redis_port}")
            if self.redis_db < 0:
                raise ValueError(f"KVORM_REDIS_DB must be >= 0, got {self.redis_db}")
            if self.redis_max_connections < 1:
                raise ValueError("KVORM_REDIS_MAX_CONNECTIONS must be at least 1")
        if self.log_format not in ("json", "text"):
            raise ValueError(f"Invalid KVORM_LOG_FORMAT '{self.log_format}'. Must be json or text")
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            raise ValueError(f"Invalid KVORM_LOG_LEVEL '{self.log_level}'")

    def log_settings(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "kvorm configuration loaded",
            extra={
                "store_backend": self.store_backend.value,
                "redis_host": self.redis_host
                if self.store_backend == StoreBackend.REDIS
                else None,
                "redis_port": self.redis_port
                if self.store_backend == StoreBackend.REDIS
                else None,
                "redis_db": self.redis_db,
                "redis_auth": self.redis_password is not None,
                "log_level": self.log_level,
            },
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded from the environment once."""
    settings = Settings()
    settings.validate_settings()
    return settings
