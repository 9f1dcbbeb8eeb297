"""
Configuration Management for FinTrack

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: the backend location, how list
completion materializes expenses, and logging behaviour. Every value is
validated when first accessed.
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Remote store (REST backend) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the finance backend"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )
    read_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for idempotent GET requests on transport errors"
    )

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not re.match(r"^https?://", v):
            raise ValueError(f"API base URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")


class ShoppingSettings(BaseSettings):
    """Shopping-list workflow configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_SHOPPING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    expense_mode: Literal["server", "client"] = Field(
        default="server",
        description=(
            "How completion creates expenses: 'server' asks the backend through "
            "the create_transactions query parameter, 'client' posts one "
            "transaction per category before marking the list completed"
        )
    )
    default_category: str = Field(
        default="Outros",
        min_length=1,
        description="Category preselected in the new item form"
    )
    duplicate_suffix: str = Field(
        default=" (Cópia)",
        description="Suffix appended to the name of a duplicated list"
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
    audit_buffer_size: int = Field(
        default=500,
        ge=0,
        le=10000,
        description="How many recent audit events to keep in memory (0 disables)"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def api(self) -> ApiSettings:
        return ApiSettings()

    @property
    def shopping(self) -> ShoppingSettings:
        return ShoppingSettings()

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
    "<name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("api", "shopping", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
