"""
Pytest Configuration and Shared Fixtures

Provides temporary storage roots, storage backends with isolated metrics,
sample payloads and settings isolation for unit and integration tests.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Test environment setup
os.environ["FLOWSTORE_ENVIRONMENT"] = "test"

from flowstore.config.settings import reload_settings
from flowstore.monitoring.metrics import MetricsRegistry
from flowstore.storage.local import LocalStorage
from flowstore.storage.registry import StorageRegistry


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )


# =============================================================================
# Settings Fixtures
# =============================================================================

_SETTINGS_ENV_VARS = (
    "FLOWSTORE_CONFIG",
    "STORAGE_TYPE",
    "STORAGE_BASE_PATH",
    "STORAGE_SCHEME",
    "MONITORING_LOG_LEVEL",
    "MONITORING_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, temp_dir: Path):
    """Isolate every test from real config files and leftover overrides."""
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FLOWSTORE_CONFIG", str(temp_dir / "missing.toml"))
    monkeypatch.setenv("FLOWSTORE_ENVIRONMENT", "test")
    reload_settings()
    yield
    StorageRegistry.clear()
    monkeypatch.undo()
    reload_settings()


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_storage_dir(temp_dir: Path) -> Path:
    """Create temporary storage directory."""
    storage_dir = temp_dir / "storage"
    storage_dir.mkdir(parents=True, exist_ok=True)
    return storage_dir


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Fresh metrics registry, so counters start at zero."""
    return MetricsRegistry()


@pytest.fixture
def storage(temp_storage_dir: Path, metrics_registry: MetricsRegistry) -> LocalStorage:
    """Local storage rooted in a temporary directory."""
    return LocalStorage(base_path=temp_storage_dir, metrics_registry=metrics_registry)


@pytest.fixture
def flow_source() -> bytes:
    """A small flow definition, as stored by the engine."""
    return (
        b"id: hello-world\n"
        b"namespace: company.team\n"
        b"tasks:\n"
        b"  - id: hello\n"
        b"    type: io.kestra.plugin.core.log.Log\n"
    )


@pytest.fixture
def populated_storage(storage: LocalStorage, flow_source: bytes) -> LocalStorage:
    """
    Storage holding a small tree for the shared tenant:

        /company/team/root.yml
        /company/team/root2.yml
        /company/team/level1/level1.yml
        /company/team/level1/level2/level2.yml
    """
    storage.put(None, "/company/team/root.yml", flow_source)
    storage.put(None, "/company/team/root2.yml", flow_source)
    storage.put(None, "/company/team/level1/level1.yml", flow_source)
    storage.put(None, "/company/team/level1/level2/level2.yml", flow_source)
    return storage
