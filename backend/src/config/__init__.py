"""
Configuration module for the family calendar backend.

Provides centralized configuration loaded from environment variables.
"""

from backend.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
