"""
Monitoring & Observability Layer

Provides monitoring for the storage layer:
- Structured logging (JSON formatting, tenant/execution context injection)
- Metrics collection (Prometheus-compatible counters, gauges, histograms)
- Health checks (storage volume, storage backend round trip)
"""

# Logging
from .logging import (
    JSONFormatter,
    ContextFilter,
    StructuredLogger,
    configure_logging,
    configure_from_preset,
    get_logger,
    set_log_context,
    clear_log_context,
    LOGGING_PRESETS,
)

# Metrics
from .metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    get_registry,
    setup_storage_metrics,
)

# Health checks
from .health import (
    HealthStatus,
    HealthCheckResult,
    HealthChecker,
    StorageHealthChecker,
    initialize_health_checks,
)

__all__ = [
    # Logging
    'JSONFormatter',
    'ContextFilter',
    'StructuredLogger',
    'configure_logging',
    'configure_from_preset',
    'get_logger',
    'set_log_context',
    'clear_log_context',
    'LOGGING_PRESETS',

    # Metrics
    'Counter',
    'Gauge',
    'Histogram',
    'MetricsRegistry',
    'get_registry',
    'setup_storage_metrics',

    # Health
    'HealthStatus',
    'HealthCheckResult',
    'HealthChecker',
    'StorageHealthChecker',
    'initialize_health_checks',
]
