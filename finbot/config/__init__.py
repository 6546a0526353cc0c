"""Configuration package."""

from finbot.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    Settings,
    StorageSettings,
    SyncSettings,
    get_settings,
    optional_section,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StorageSettings",
    "SyncSettings",
    "get_settings",
    "optional_section",
    "validate_all_settings",
]
