"""
Configuration Management for the ACCA client core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which remote endpoints and timings the client
depends on, and ensures bad values are rejected at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://acca-api.autoaiassistant.com/api"


class ApiSettings(BaseSettings):
    """Remote API gateway configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ACCA_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL all endpoint paths are appended to"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-request timeout"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for idempotent GET requests on connection failure"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class SessionSettings(BaseSettings):
    """Session lifecycle and token persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ACCA_SESSION_",
        extra="ignore"
    )

    check_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Interval between background session validations"
    )
    storage_key: str = Field(
        default="acca_auth_token",
        min_length=1,
        description="Key the bearer token is stored under"
    )
    token_storage_path: Path = Field(
        default=Path("~/.acca/credentials.json"),
        description="File used by FileTokenStorage"
    )
    expired_message: str = Field(
        default="Your session has expired. Please login again.",
        description="Notification shown on forced logout"
    )

    @field_validator('token_storage_path')
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class ReconcileSettings(BaseSettings):
    """Bank statement reconciliation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ACCA_RECONCILE_",
        extra="ignore"
    )

    amount_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Amounts closer than this are considered equal"
    )
    default_type: str = Field(
        default="expense",
        description="Transaction type assumed when a statement row has none"
    )
    csv_field_name: str = Field(
        default="csv_file",
        description="Multipart field name the server expects the statement under"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum statement file size in MB"
    )

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def session(self) -> SessionSettings:
        return SessionSettings()

    @property
    def reconcile(self) -> ReconcileSettings:
        return ReconcileSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("api", "session", "reconcile", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
