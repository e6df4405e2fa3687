"""Prometheus metrics definitions and helpers.

Provides the metric definitions shared by the ledger API components.
"""

from functools import lru_cache
from typing import Callable

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class HTTPMetrics:
    """Request-level metrics recorded by the logging middleware."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=registry,
        )

        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method", "endpoint"],
            registry=registry,
        )


class QueryMetrics:
    """Document store and authentication metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize query metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Paginated lookups by outcome (success|store_error)
        self.queries_total = Counter(
            "ledger_store_queries_total",
            "Total paginated lookups against the document store",
            ["collection", "outcome"],
            registry=registry,
        )

        self.query_duration = Histogram(
            "ledger_store_query_duration_seconds",
            "Time spent on a paginated lookup (page fetch plus count)",
            ["collection"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=registry,
        )

        self.records_returned = Histogram(
            "ledger_store_records_returned",
            "Number of records on a served page",
            ["collection"],
            buckets=[0, 1, 5, 10, 25, 50, 100],
            registry=registry,
        )

        # Rejected credentials by reason (missing|malformed|invalid_token|unknown_user)
        self.auth_failures = Counter(
            "ledger_auth_failures_total",
            "Total rejected credentials",
            ["reason"],
            registry=registry,
        )


class LedgerMetrics:
    """All metric groups of the service."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.http = HTTPMetrics(registry)
        self.query = QueryMetrics(registry)


@lru_cache()
def setup_metrics() -> LedgerMetrics:
    """Create the process-wide metric instances once.

    Returns:
        Metrics registered on the default registry
    """
    return LedgerMetrics()


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
