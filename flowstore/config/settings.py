"""
Settings Management

Pydantic-based settings schema with environment variable support.
Reads the TOML config file and lets environment variables override it.

@.architecture
Incoming: config/loader.py, Environment variables, config/flowstore.toml --- {Dict from load_config, str from os.getenv}
Processing: get_settings(), reload_settings(), Settings.__init__(), field_validator() --- {4 jobs: configuration_loading, environment_variable_merging, schema_validation, caching}
Outgoing: storage/registry.py, monitoring/health.py, scripts/health_check.py --- {Settings Pydantic model with typed config sections}
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from flowstore.security.sanitization import DEFAULT_SCHEME
from .loader import load_config


# =============================================================================
# Settings Schemas
# =============================================================================

class StorageSettings(BaseModel):
    """File storage settings."""
    type: str = "local"
    base_path: Path = Field(default_factory=lambda: Path("./data/storage"))
    scheme: str = DEFAULT_SCHEME

    @field_validator('scheme')
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Schemes are compared case-insensitively."""
        if not v or not v.replace('+', '').replace('-', '').replace('.', '').isalnum():
            raise ValueError(f"Invalid storage scheme: {v!r}")
        return v.lower()


class MonitoringSettings(BaseModel):
    """Monitoring and logging configuration."""
    log_level: str = "INFO"
    log_format: str = "json"  # json|text
    disk_free_warning_percent: float = 10.0

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ('json', 'text'):
            raise ValueError("log_format must be 'json' or 'text'")
        return v


class Settings(BaseModel):
    """
    Main application settings.

    Loads configuration from:
    1. TOML config file (config/flowstore.toml or FLOWSTORE_CONFIG)
    2. Environment variables
    3. Defaults defined in schemas

    Priority: Environment variables > TOML config > Defaults
    """

    app_name: str = "flowstore"
    app_version: str = "0.1.0"
    environment: str = "development"  # development|production|test

    storage: StorageSettings = Field(default_factory=StorageSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ['development', 'production', 'test']
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v


# =============================================================================
# Settings Loader
# =============================================================================

# Environment variable -> (section, field)
_ENV_OVERRIDES = {
    "STORAGE_TYPE": ("storage", "type"),
    "STORAGE_BASE_PATH": ("storage", "base_path"),
    "STORAGE_SCHEME": ("storage", "scheme"),
    "MONITORING_LOG_LEVEL": ("monitoring", "log_level"),
    "MONITORING_LOG_FORMAT": ("monitoring", "log_format"),
}


def build_settings(config: Dict[str, Any]) -> Settings:
    """
    Build settings from parsed TOML sections plus environment overrides.

    Args:
        config: Parsed config (``[app]``, ``[storage]``, ``[monitoring]`` tables)

    Returns:
        Settings: Validated settings
    """
    app_config = config.get("app", {})
    settings_dict: Dict[str, Any] = {
        key: value for key, value in app_config.items()
        if key in ("app_name", "environment")
    }
    for section in ("storage", "monitoring"):
        if section in config:
            settings_dict[section] = dict(config[section])

    if environment := os.getenv("FLOWSTORE_ENVIRONMENT"):
        settings_dict["environment"] = environment

    for env_var, (section, field) in _ENV_OVERRIDES.items():
        if value := os.getenv(env_var):
            settings_dict.setdefault(section, {})[field] = value

    return Settings(**settings_dict)


@lru_cache()
def get_settings() -> Settings:
    """
    Load and return application settings (cached).

    Returns:
        Settings: Complete application settings
    """
    return build_settings(load_config())


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Use this when settings need to be refreshed (e.g., after config file changes).
    """
    get_settings.cache_clear()
    return get_settings()

