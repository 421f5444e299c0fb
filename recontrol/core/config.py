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

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    admin_identity_header: str = Field(
        "X-Admin-User-Id",
        description="Header carrying the operator identity used for rate limiting and audit",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the per-admin write rate limit on mutating endpoints",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of write operations allowed per window (per admin)",
        ge=1,
    )
    rate_limit_window_ms: int = Field(
        60_000,
        description="Rate limit window size in milliseconds",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: float = Field(
        300.0,
        description="Interval between sweeps of expired rate limit entries",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers on write responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AnomalySettings(BaseSettings):
    """Thresholds used by the dashboard anomaly detectors."""

    usage_spike_ratio: float = Field(
        2.0,
        description="Current/7d-average ratio above which a usage spike is reported",
    )
    usage_critical_ratio: float = Field(
        3.0,
        description="Ratio above which a usage spike is critical",
    )
    sense_failure_threshold: float = Field(
        85.0,
        description="24h job success rate (percent) below which a market is flagged",
    )
    sense_critical_threshold: float = Field(
        50.0,
        description="24h job success rate (percent) below which the flag is critical",
    )

    model_config = SettingsConfigDict(
        env_prefix="ANOMALY_",
        case_sensitive=False,
    )


class SupabaseSettings(BaseSettings):
    """Connection settings for the database REST gateway (stored procedures)."""

    url: str | None = Field(
        None,
        description="Base URL of the database REST gateway (e.g., https://xyz.supabase.co)",
    )
    service_role_key: str | None = Field(
        None,
        description="Service role key used for admin RPC calls",
    )
    db_schema: str = Field(
        "core",
        description="Database schema exposing the admin procedures",
    )
    timeout_seconds: float = Field(
        15.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )


class ReadviseSettings(BaseSettings):
    """Settings for the external market bootstrap pipeline service."""

    internal_url: str | None = Field(
        None,
        description="Base URL of the readvise internal API",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="READVISE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    anomaly: AnomalySettings = Field(default_factory=AnomalySettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    readvise: ReadviseSettings = Field(default_factory=ReadviseSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
