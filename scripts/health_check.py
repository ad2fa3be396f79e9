#!/usr/bin/env python3
"""
flowstore - Health Check Script

Storage health monitoring:
- Storage volume free space
- Write/read/delete round trip on the configured backend
- JSON output for monitoring systems
- Optional Prometheus text dump of the metrics gathered during the check

@.architecture
Incoming: Command line, monitoring systems --- {CLI args --config/--tenant/--metrics-file}
Processing: run_health_check(), write_metrics(), main() --- {4 jobs: configuration_loading, health_checking, metrics_export, reporting}
Outgoing: stdout, metrics file, monitoring systems --- {JSON health report, Prometheus text, exit code}
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flowstore.config.loader import CONFIG_ENV_VAR  # noqa: E402
from flowstore.config.settings import reload_settings  # noqa: E402
from flowstore.monitoring.health import HealthChecker, HealthStatus, initialize_health_checks  # noqa: E402
from flowstore.monitoring.logging import clear_log_context, configure_from_preset, set_log_context  # noqa: E402
from flowstore.monitoring.metrics import get_registry  # noqa: E402
from flowstore.storage.registry import StorageRegistry  # noqa: E402


def run_health_check(config_path: Optional[str] = None, tenant: Optional[str] = None) -> Dict[str, Any]:
    """
    Run all storage health checks.

    Args:
        config_path: TOML config file (FLOWSTORE_CONFIG / default if None)
        tenant: Tenant the storage check writes under

    Returns:
        Aggregated health report
    """
    if config_path:
        os.environ[CONFIG_ENV_VAR] = config_path
    settings = reload_settings()

    # stdout carries only the JSON report
    configure_from_preset(
        settings.environment,
        level=settings.monitoring.log_level,
        format_type=settings.monitoring.log_format,
        enable_console=False,
    )

    set_log_context(tenant_id=tenant)
    try:
        storage = StorageRegistry.create_storage(settings.storage)
        checker = initialize_health_checks(
            storage,
            tenant=tenant,
            checker=HealthChecker(
                storage_path=settings.storage.base_path,
                disk_free_warning_percent=settings.monitoring.disk_free_warning_percent,
            ),
        )
        return asyncio.run(checker.check_all())
    finally:
        clear_log_context()


def write_metrics(path: str) -> None:
    """
    Write the process metrics in Prometheus text format.

    Args:
        path: Target file (parent directories are created)
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(get_registry().export_prometheus())


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="flowstore storage health check",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the storage configured in config/flowstore.toml
  python scripts/health_check.py

  # Check another config, writing as a tenant
  python scripts/health_check.py --config /etc/flowstore.toml --tenant main

  # Also dump metrics for a textfile collector
  python scripts/health_check.py --metrics-file /var/lib/node_exporter/flowstore.prom
        """
    )

    parser.add_argument(
        '--config',
        help='Path to a TOML config file'
    )

    parser.add_argument(
        '--tenant',
        help='Tenant to run the storage check as'
    )

    parser.add_argument(
        '--metrics-file',
        help='Write Prometheus metrics to this file after the check'
    )

    args = parser.parse_args()

    try:
        report = run_health_check(config_path=args.config, tenant=args.tenant)
    except Exception as e:
        report = {'status': HealthStatus.UNHEALTHY.value, 'error': str(e)}

    if args.metrics_file:
        write_metrics(args.metrics_file)

    print(json.dumps(report, indent=2, default=str))

    sys.exit(0 if report['status'] == HealthStatus.HEALTHY.value else 1)


if __name__ == "__main__":
    main()
