"""
Configuration package - TOML file plus environment overrides.
"""

from .loader import load_config
from .settings import (
    MonitoringSettings,
    Settings,
    StorageSettings,
    build_settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "load_config",
    "MonitoringSettings",
    "Settings",
    "StorageSettings",
    "build_settings",
    "get_settings",
    "reload_settings",
]
