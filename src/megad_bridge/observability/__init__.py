"""Observability components: logging, metrics, and health checks."""

from megad_bridge.observability.health import HealthServer, create_health_checker
from megad_bridge.observability.logging import get_logger, set_package_level, setup_logging
from megad_bridge.observability.metrics import METRICS, MetricsServer

__all__ = [
    "setup_logging",
    "set_package_level",
    "get_logger",
    "METRICS",
    "MetricsServer",
    "HealthServer",
    "create_health_checker",
]
