"""Configuration package."""

from fintrack.config.settings import (
    ApiSettings,
    AppSettings,
    Settings,
    ShoppingSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "Settings",
    "ShoppingSettings",
    "get_settings",
    "validate_all_settings",
]
