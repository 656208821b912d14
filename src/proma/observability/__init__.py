"""Observability module: structured logging and Prometheus metrics."""

from proma.observability.logging import get_logger, setup_logging
from proma.observability.metrics import MetricsCollector, get_metrics_collector

__all__ = [
    "setup_logging",
    "get_logger",
    "MetricsCollector",
    "get_metrics_collector",
]
