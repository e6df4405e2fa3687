"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    HTTPMetrics,
    QueryMetrics,
    LedgerMetrics,
    setup_metrics,
    get_metrics_handler,
)

__all__ = [
    "HTTPMetrics",
    "QueryMetrics",
    "LedgerMetrics",
    "setup_metrics",
    "get_metrics_handler",
]
