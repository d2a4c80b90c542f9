"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_rate_limit_settings() -> "RateLimitSettings":
    """Build rate limit settings from environment."""

    return RateLimitSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class RateLimitSettings(BaseSettings):
    """Fixed-window rate limiting configuration.

    Values below one request or one second are accepted here and clamped by
    ``Quota``; the settings layer does not reject them.
    """

    enabled: bool = Field(
        True,
        description="Enable rate limiting for routes using the dependency",
    )
    requests: int = Field(
        10,
        description="Maximum number of requests allowed per window (per key)",
    )
    window_seconds: float = Field(
        60,
        description="Window size in seconds; fractions are truncated",
    )
    methods: str = Field(
        "POST",
        description="Comma-separated HTTP methods subject to limiting (case-sensitive)",
    )
    key_policy: str = Field(
        "ip",
        description="Key policy: 'ip' (client address) or 'path_ip' (path + client address)",
    )
    header_name: str = Field(
        "",
        description="Header carrying the client address (empty = transport remote address)",
    )
    strip_header_port: bool = Field(
        False,
        description="Strip a ':port' suffix from header-derived client addresses",
    )
    store: str = Field(
        "memory",
        description="Counter store backend: 'memory' or 'redis'",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL used when store='redis'",
    )
    redis_prefix: str = Field(
        "webrate:",
        description="Prefix applied to every Redis counter key",
    )
    max_keys: int | None = Field(
        None,
        description="Maximum keys tracked by the in-memory store (None for unlimited)",
        ge=1,
    )
    fail_open: bool = Field(
        False,
        description="Admit requests when the counter store fails instead of returning 503",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATELIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log output: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output='file'")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
