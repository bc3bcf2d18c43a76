"""
Configuration package.

Exports all configuration classes and utilities.
"""

from fetchnews.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
