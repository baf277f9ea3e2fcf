"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Invalid values (non-positive or non-finite limits, windows and TTLs) fail
validation when the settings are built, so a misconfigured service never starts.
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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate file logs after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field("X-Request-ID", description="Header carrying the correlation id")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    version: str = Field(
        "1.0.0",
        description="Version reported by the info endpoint",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required on write endpoints",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per client IP",
    )
    rate_limit_requests: int = Field(
        100,
        description="Token bucket capacity: maximum requests per window",
        ge=1,
    )
    rate_limit_window_seconds: float = Field(
        3600,
        description="Rate limit window size in seconds",
        gt=0,
        allow_inf_nan=False,
    )
    rate_limit_sweep_interval_seconds: float | None = Field(
        None,
        description="Idle bucket sweep interval (defaults to the limiter window)",
        gt=0,
        allow_inf_nan=False,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-Rate-Limit-* headers on throttled routes",
    )
    github_rate_limit_requests: int = Field(
        30,
        description="Capacity of the stricter limiter on GitHub proxy endpoints",
        ge=1,
    )
    github_rate_limit_window_seconds: float = Field(
        3600,
        description="Window of the stricter limiter on GitHub proxy endpoints",
        gt=0,
        allow_inf_nan=False,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Cache layer configuration."""

    backend: str = Field(
        "memory",
        description="Cache store backend: memory or redis",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL when backend=redis",
    )
    key_prefix: str = Field(
        "cache:",
        description="Prefix applied to every key in an external store",
    )
    max_entries: int | None = Field(
        10_000,
        description="Maximum in-memory entries before LRU eviction (None for unlimited)",
        ge=1,
    )
    github_ttl_seconds: float = Field(
        21_600,
        description="TTL for GitHub-derived data",
        gt=0,
        allow_inf_nan=False,
    )
    content_ttl_seconds: float = Field(
        86_400,
        description="TTL for portfolio content",
        gt=0,
        allow_inf_nan=False,
    )
    operation_timeout_seconds: float = Field(
        5.0,
        description="Deadline applied to each cache store call",
        gt=0,
        allow_inf_nan=False,
    )
    sweep_interval_seconds: float = Field(
        3600,
        description="Interval of the expired-entry sweep",
        gt=0,
        allow_inf_nan=False,
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class GitHubSettings(BaseSettings):
    """GitHub API client configuration."""

    api_url: str = Field(
        "https://api.github.com",
        description="GitHub REST API base URL",
    )
    token: str | None = Field(
        None,
        description="Personal access token (raises the upstream rate limit)",
    )
    username: str = Field(
        "octocat",
        description="Default username shown by the portfolio",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
        gt=0,
        allow_inf_nan=False,
    )

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=LogSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
