"""
Unit Tests: Health Checks

Tests for the disk check, the storage round trip and status aggregation.
"""

from collections import namedtuple
from unittest.mock import MagicMock, patch

import pytest

from flowstore.monitoring.health import (
    HealthChecker,
    HealthStatus,
    StorageHealthChecker,
    initialize_health_checks,
)
from flowstore.monitoring.metrics import MetricsRegistry

pytestmark = pytest.mark.unit

DiskUsage = namedtuple("DiskUsage", "total used free percent")


@pytest.fixture
def checker(temp_storage_dir, metrics_registry) -> HealthChecker:
    return HealthChecker(storage_path=temp_storage_dir, metrics_registry=metrics_registry)


class TestDiskCheck:
    """Test the storage volume check."""

    @pytest.mark.asyncio
    async def test_disk_check(self, checker, metrics_registry):
        result = await checker.check_component("disk")

        assert result.component == "disk"
        assert result.status in (HealthStatus.HEALTHY, HealthStatus.DEGRADED)
        assert metrics_registry.gauge("flowstore_storage_disk_free_bytes", "").get() > 0

    @pytest.mark.asyncio
    async def test_low_disk_degraded(self, checker):
        usage = DiskUsage(total=100, used=97, free=3, percent=97.0)
        with patch("flowstore.monitoring.health.psutil.disk_usage", return_value=usage):
            result = await checker.check_component("disk")

        assert result.status is HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_missing_storage_path(self, temp_dir, metrics_registry):
        """A storage root that doesn't exist yet is checked via its parent."""
        checker = HealthChecker(storage_path=temp_dir / "not" / "yet", metrics_registry=metrics_registry)
        result = await checker.check_component("disk")
        assert result.details["path"] == str(temp_dir.resolve())

    @pytest.mark.asyncio
    async def test_disk_error_unknown(self, checker):
        with patch("flowstore.monitoring.health.psutil.disk_usage", side_effect=OSError("boom")):
            result = await checker.check_component("disk")

        assert result.status is HealthStatus.UNKNOWN


class TestStorageRoundTrip:
    """Test the storage health checker."""

    @pytest.mark.asyncio
    async def test_round_trip_healthy(self, storage):
        result = await StorageHealthChecker(storage).check_health()

        assert result["healthy"] is True
        assert result["uri"].startswith("kestra:///.health-")
        assert result["uri"].endswith("/check")

    @pytest.mark.asyncio
    async def test_tenant_root_left_empty(self, storage):
        """A finished check leaves no file or directory behind."""
        storage.create_directory("t1", "/keep")

        await StorageHealthChecker(storage, tenant="t1").check_health()

        assert [entry.file_name for entry in storage.list("t1", "/keep")] == []
        assert list(storage.resolver.tenant_root("t1").iterdir()) == [storage.resolver.resolve("t1", "/keep")]

    @pytest.mark.asyncio
    async def test_repeated_checks_leave_nothing(self, storage):
        checker = StorageHealthChecker(storage)
        for _ in range(3):
            assert (await checker.check_health())["healthy"] is True

        assert list(storage.resolver.tenant_root(None).iterdir()) == []

    @pytest.mark.asyncio
    async def test_write_failure(self):
        broken = MagicMock()
        broken.put.side_effect = PermissionError("read-only")

        result = await StorageHealthChecker(broken).check_health()

        assert result["healthy"] is False
        assert "read-only" in result["message"]

    @pytest.mark.asyncio
    async def test_check_directory_removed_after_failure(self):
        broken = MagicMock()
        broken.get.side_effect = OSError("unreadable")

        await StorageHealthChecker(broken, tenant="t1").check_health()

        tenant, removed = broken.delete.call_args.args
        assert tenant == "t1"
        assert removed.startswith("/.health-")
        assert "/" not in removed[1:]


class TestAggregation:
    """Test overall status."""

    @pytest.mark.asyncio
    async def test_check_all_healthy(self, checker, storage):
        initialize_health_checks(storage, checker=checker)
        usage = DiskUsage(total=100, used=10, free=90, percent=10.0)

        with patch("flowstore.monitoring.health.psutil.disk_usage", return_value=usage):
            report = await checker.check_all()

        assert report["status"] == "healthy"
        assert {c["component"] for c in report["components"]} == {"disk", "storage"}

    @pytest.mark.asyncio
    async def test_failing_component_unhealthy(self, checker):
        class Failing:
            async def check_health(self):
                raise RuntimeError("down")

        checker.register_checker("broken", Failing())
        report = await checker.check_all()

        assert report["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_unknown_component(self, checker):
        assert await checker.check_component("nope") is None

    def test_initialize_uses_storage_root(self, storage):
        checker = initialize_health_checks(storage, checker=HealthChecker(metrics_registry=MetricsRegistry()))
        assert checker.storage_path == storage.base_path

    def test_initialize_without_checker_builds_new_one(self, storage):
        first = initialize_health_checks(storage)
        second = initialize_health_checks(storage)

        assert first is not second
        assert first.storage_path == storage.base_path
