"""
Risk Gateway caching package.

Provides the process-local settings cache that fronts the trading API.
Prefer short-lived entries and explicit invalidation on writes.
"""

from .settings_cache import SettingsCache

__all__ = ["SettingsCache"]
