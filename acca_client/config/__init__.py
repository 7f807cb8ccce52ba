"""Configuration package."""

from acca_client.config.settings import (
    ApiSettings,
    AppSettings,
    ReconcileSettings,
    SessionSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "ReconcileSettings",
    "SessionSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
