"""
Health Checks - Monitoring Layer

Provides health checks and diagnostics for:
- The storage volume (free space, via psutil)
- Storage backends (write/read/delete round trip)

@.architecture
Incoming: scripts/health_check.py, Engine bootstrap, Component instances --- {StorageInterface, str component_name, Optional[str] tenant}
Processing: check_all(), check_component(), _check_disk(), register_checker(), _aggregate_status() --- {5 jobs: aggregation, health_checking, round_trip_checking, registration, resource_monitoring}
Outgoing: scripts/health_check.py --- {Dict[str, Any] health status, HealthCheckResult, HealthStatus enum}
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import psutil

from .logging import get_logger
from .metrics import MetricsRegistry, setup_storage_metrics

logger = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


class HealthStatus(str, Enum):
    """Health check status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """
    Result of a health check.

    Attributes:
        component: Component name
        status: Health status
        message: Status message
        details: Additional details
        checked_at: Timestamp of check
        response_time_ms: Check execution time
    """
    component: str
    status: HealthStatus
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    checked_at: str = field(default_factory=_utc_now)
    response_time_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'component': self.component,
            'status': self.status.value,
            'message': self.message,
            'details': self.details,
            'response_time_ms': self.response_time_ms,
        }


class HealthChecker:
    """
    Health check system for the storage layer.

    Always checks the disk holding ``storage_path``; component checkers are
    objects with an async ``check_health()`` returning a dict with a
    ``healthy`` flag.
    """

    def __init__(
        self,
        storage_path: Union[str, Path] = ".",
        disk_free_warning_percent: float = 10.0,
        metrics_registry: Optional[MetricsRegistry] = None
    ):
        """
        Initialize health checker.

        Args:
            storage_path: Directory whose volume is checked
            disk_free_warning_percent: Free space below which the disk is degraded
            metrics_registry: Registry holding the disk-free gauge (global if None)
        """
        self._start_time = time.time()
        self._checkers: Dict[str, Any] = {}
        self.storage_path = Path(storage_path)
        self.disk_free_warning_percent = disk_free_warning_percent
        self._metrics = setup_storage_metrics(metrics_registry)

    def register_checker(self, name: str, checker: Any) -> None:
        """
        Register a component health checker.

        Args:
            name: Component name
            checker: Object with async check_health() method
        """
        self._checkers[name] = checker

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Aggregated health check results
        """
        start = time.time()
        results = [await self._check_disk()]

        for name in self._checkers:
            results.append(await self._run_checker(name))

        overall_status = self._aggregate_status(results)

        return {
            'status': overall_status.value,
            'timestamp': _utc_now(),
            'uptime_seconds': self.get_uptime(),
            'check_duration_ms': (time.time() - start) * 1000,
            'components': [r.to_dict() for r in results],
        }

    async def check_component(self, component: str) -> Optional[HealthCheckResult]:
        """
        Check health of specific component.

        Args:
            component: Component name ("disk" for the storage volume)

        Returns:
            HealthCheckResult or None if not found
        """
        if component == "disk":
            return await self._check_disk()

        if component not in self._checkers:
            return None

        return await self._run_checker(component)

    async def _run_checker(self, name: str) -> HealthCheckResult:
        try:
            check_start = time.time()
            result = await self._checkers[name].check_health()
            check_time = (time.time() - check_start) * 1000

            return HealthCheckResult(
                component=name,
                status=HealthStatus.HEALTHY if result.get('healthy', False) else HealthStatus.UNHEALTHY,
                message=result.get('message', 'Component check completed'),
                details=result,
                response_time_ms=check_time
            )
        except Exception as e:
            logger.exception(f"Health check {name} raised")
            return HealthCheckResult(
                component=name,
                status=HealthStatus.UNHEALTHY,
                message=f"Health check failed: {str(e)}",
                details={'error': str(e)}
            )

    async def _check_disk(self) -> HealthCheckResult:
        """
        Check free space on the storage volume.

        Returns:
            Disk health check result
        """
        # The storage directory may not exist yet
        path = self.storage_path.resolve()
        while not path.exists() and path != path.parent:
            path = path.parent

        try:
            disk = psutil.disk_usage(str(path))
        except OSError as e:
            return HealthCheckResult(
                component="disk",
                status=HealthStatus.UNKNOWN,
                message=f"Failed to check disk: {str(e)}",
                details={'error': str(e), 'path': str(path)}
            )

        self._metrics['disk_free_bytes'].set(disk.free)

        free_percent = 100.0 - disk.percent
        status = HealthStatus.HEALTHY
        message = "Storage volume healthy"
        if free_percent < self.disk_free_warning_percent:
            status = HealthStatus.DEGRADED
            message = f"Low free disk space: {free_percent:.1f}%"

        return HealthCheckResult(
            component="disk",
            status=status,
            message=message,
            details={
                'path': str(path),
                'total_gb': round(disk.total / (1024**3), 2),
                'free_gb': round(disk.free / (1024**3), 2),
                'percent_used': disk.percent,
            }
        )

    def _aggregate_status(self, results: List[HealthCheckResult]) -> HealthStatus:
        """
        Aggregate component statuses into overall status.

        Args:
            results: List of health check results

        Returns:
            Overall health status
        """
        if not results:
            return HealthStatus.UNKNOWN

        statuses = [r.status for r in results]

        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY

        if HealthStatus.DEGRADED in statuses or HealthStatus.UNKNOWN in statuses:
            return HealthStatus.DEGRADED

        return HealthStatus.HEALTHY

    def get_uptime(self) -> float:
        """Get checker uptime in seconds."""
        return time.time() - self._start_time


class StorageHealthChecker:
    """
    Health checker for a storage backend.

    Writes a small check file into a fresh ``/.health-<hex>/`` directory,
    reads it back and removes the whole directory, so a finished check
    leaves the tenant root as it found it. Blocking storage calls run in a
    worker thread.
    """

    CHECK_DIR_PREFIX = "/.health-"

    def __init__(self, storage: Any, tenant: Optional[str] = None):
        """
        Initialize storage health checker.

        Args:
            storage: StorageInterface implementation
            tenant: Tenant to check as (shared root if None)
        """
        self.storage = storage
        self.tenant = tenant

    def _round_trip(self) -> Dict[str, Any]:
        payload = uuid.uuid4().bytes
        check_dir = f"{self.CHECK_DIR_PREFIX}{uuid.uuid4().hex}"
        uri = f"{check_dir}/check"

        try:
            stored_uri = self.storage.put(self.tenant, uri, payload)
            with self.storage.get(self.tenant, uri) as stream:
                read_back = stream.read()
        finally:
            self.storage.delete(self.tenant, check_dir)

        if read_back != payload:
            return {'healthy': False, 'message': 'Check file content mismatch', 'uri': stored_uri}
        return {'healthy': True, 'message': 'Storage read/write OK', 'uri': stored_uri}

    async def check_health(self) -> Dict[str, Any]:
        """
        Check storage health.

        Returns:
            Health status dict
        """
        try:
            start = time.time()
            result = await asyncio.to_thread(self._round_trip)
            result['response_time_ms'] = (time.time() - start) * 1000
            return result
        except Exception as e:
            return {
                'healthy': False,
                'message': f'Storage check failed: {str(e)}'
            }


def initialize_health_checks(
    storage: Optional[Any] = None,
    tenant: Optional[str] = None,
    checker: Optional[HealthChecker] = None
) -> HealthChecker:
    """
    Initialize health checks for components.

    Args:
        storage: Storage backend to check
        tenant: Tenant the storage check writes under
        checker: Checker to configure (a new HealthChecker if None)

    Returns:
        Configured HealthChecker
    """
    checker = checker or HealthChecker()

    if storage is not None:
        base_path = getattr(storage, 'base_path', None)
        if base_path is not None:
            checker.storage_path = Path(base_path)
        checker.register_checker('storage', StorageHealthChecker(storage, tenant))

    return checker
