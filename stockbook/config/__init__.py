"""
Configuration module for the stock order book.

This module provides configuration management and settings
read from environment variables.
"""

from .settings import Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
