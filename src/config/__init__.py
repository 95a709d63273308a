"""Configuration management with Pydantic Settings."""

from src.config.settings import VaultSettings, clear_settings_cache, get_settings

__all__ = [
    "VaultSettings",
    "clear_settings_cache",
    "get_settings",
]
