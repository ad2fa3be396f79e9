"""
Unit Tests: Configuration

Tests for the TOML loader and settings with environment overrides.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from flowstore.config.loader import load_config
from flowstore.config.settings import (
    Settings,
    StorageSettings,
    build_settings,
    get_settings,
    reload_settings,
)

pytestmark = pytest.mark.unit

CONFIG = """
[app]
environment = "production"

[storage]
base_path = "/srv/flowstore"
scheme = "Kestra"

[monitoring]
log_level = "DEBUG"
log_format = "text"
"""


@pytest.fixture
def config_file(temp_dir: Path) -> Path:
    path = temp_dir / "flowstore.toml"
    path.write_text(CONFIG)
    return path


# =============================================================================
# Loader Tests
# =============================================================================

class TestLoader:
    """Test TOML loading."""

    def test_missing_file(self, temp_dir):
        assert load_config(temp_dir / "nope.toml") == {}

    def test_load(self, config_file):
        config = load_config(config_file)
        assert config["storage"]["base_path"] == "/srv/flowstore"

    def test_env_var_location(self, config_file, monkeypatch):
        monkeypatch.setenv("FLOWSTORE_CONFIG", str(config_file))
        assert load_config()["monitoring"]["log_level"] == "DEBUG"


# =============================================================================
# Settings Tests
# =============================================================================

class TestSettings:
    """Test settings schemas and merging."""

    def test_defaults(self):
        settings = Settings()
        assert settings.storage.type == "local"
        assert settings.storage.scheme == "kestra"
        assert settings.storage.base_path == Path("./data/storage")
        assert settings.monitoring.log_format == "json"

    def test_from_toml(self, config_file, monkeypatch):
        monkeypatch.delenv("FLOWSTORE_ENVIRONMENT")
        settings = build_settings(load_config(config_file))

        assert settings.environment == "production"
        assert settings.storage.base_path == Path("/srv/flowstore")
        assert settings.storage.scheme == "kestra"
        assert settings.monitoring.log_level == "DEBUG"

    def test_env_overrides_toml(self, config_file, monkeypatch):
        monkeypatch.setenv("STORAGE_BASE_PATH", "/var/lib/flowstore")
        monkeypatch.setenv("MONITORING_LOG_FORMAT", "json")

        settings = build_settings(load_config(config_file))

        assert settings.environment == "test"
        assert settings.storage.base_path == Path("/var/lib/flowstore")
        assert settings.monitoring.log_format == "json"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="staging")

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            build_settings({"monitoring": {"log_format": "xml"}})

    def test_invalid_scheme(self):
        with pytest.raises(ValidationError):
            StorageSettings(scheme="bad scheme")


class TestSettingsCache:
    """Test cached settings access."""

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("STORAGE_TYPE", "other")

        assert get_settings().storage.type == "local"
        reloaded = reload_settings()
        assert reloaded is not first
        assert reloaded.storage.type == "other"
