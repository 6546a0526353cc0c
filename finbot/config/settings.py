"""
Configuration Management for FinBot

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Process configuration (API keys, timeouts, paths) lives here.
User-editable ledger settings (initial balance, daily limit, sync endpoint)
are NOT configuration - they are data owned by the ledger store and live in
finbot.models.transaction.UserSettings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )
    
    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    history_limit: int = Field(
        default=100,
        ge=0,
        le=100,
        description="How many recent transactions are sent as context"
    )


class SyncSettings(BaseSettings):
    """Remote sync endpoint transport configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        extra="ignore"
    )
    
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for a single request to the sync endpoint"
    )
    pull_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for the full-list GET (pushes are never retried)"
    )
    retry_backoff: float = Field(
        default=1.0,
        ge=0.0,
        description="Exponential backoff multiplier between pull attempts"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets direct storage configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )
    
    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet holding transactions"
    )
    
    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )
    
    data_dir: str = Field(
        default=".finbot",
        description="Directory holding the locally persisted ledger"
    )


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
    
    default_daily_limit: int = Field(
        default=500000,
        ge=0,
        description="Daily spending limit used when none is stored"
    )
    default_notification_times: str = Field(
        default="09:00,12:00,20:00",
        description="Comma-separated reminder times used when none are stored"
    )
    supported_upload_types: str = Field(
        default="image/jpeg,image/png,image/webp,audio/webm,audio/mp4,audio/ogg",
        description="Comma-separated list of accepted upload mime types"
    )
    
    @property
    def notification_times_list(self) -> list[str]:
        """Get default reminder times as a list."""
        return [t.strip() for t in self.default_notification_times.split(",") if t.strip()]
    
    @property
    def supported_types_list(self) -> list[str]:
        """Get supported mime types as a list."""
        return [t.strip().lower() for t in self.supported_upload_types.split(",")]


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
    
    # Sub-settings are loaded lazily to allow partial configuration
    
    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()
    
    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()
    
    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()
    
    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()
    
    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.
    
    Returns a dict of {setting_name: is_valid}, plus a
    `<name>_error` entry for every section that failed.
    """
    results: dict = {}
    settings = get_settings()
    
    for name in ("gemini", "sync", "google_sheets", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results


def optional_section(name: str) -> Optional[BaseSettings]:
    """Return a settings section, or None when it is not configured."""
    try:
        return getattr(get_settings(), name)
    except Exception:
        return None
