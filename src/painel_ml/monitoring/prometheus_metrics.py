"""
Prometheus metrics for monitoring application performance.

Metrics exported:
- painel_http_requests_total: Total HTTP requests
- painel_http_request_duration_seconds: Request duration histogram
- painel_errors_total: Total errors
- painel_sync_operations_total: Manual and webhook-driven syncs
- painel_sync_duration_seconds: Sync duration histogram
- painel_webhooks_received_total: Webhook notifications by topic and outcome
- painel_queue_messages_total: Queue messages handled by the worker
- painel_active_accounts: Number of connected seller accounts
"""

import re
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
)
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)
MELI_ID_PATTERN = re.compile(r"/[A-Z]{3}\d+")
NUMERIC_PATTERN = re.compile(r"/\d+")


class PrometheusMetrics:
    """
    Prometheus metrics collector for Painel ML.

    Every instance owns its registry so tests can create fresh collectors
    without duplicate-timeseries errors.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # HTTP request metrics
        self.requests_total = Counter(
            "painel_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "painel_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.errors_total = Counter(
            "painel_errors_total",
            "Total errors",
            ["error_type", "endpoint"],
            registry=self.registry,
        )

        # Sync metrics
        self.sync_operations_total = Counter(
            "painel_sync_operations_total",
            "Sync operations",
            ["scope", "status"],
            registry=self.registry,
        )

        self.sync_duration = Histogram(
            "painel_sync_duration_seconds",
            "Sync duration in seconds",
            ["scope"],
            buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
            registry=self.registry,
        )

        # Webhooks and queue
        self.webhooks_received_total = Counter(
            "painel_webhooks_received_total",
            "Webhook notifications received",
            ["topic", "status"],
            registry=self.registry,
        )

        self.queue_messages_total = Counter(
            "painel_queue_messages_total",
            "Queue messages handled by the worker",
            ["type", "outcome"],
            registry=self.registry,
        )

        self.active_accounts = Gauge(
            "painel_active_accounts",
            "Number of connected seller accounts",
            registry=self.registry,
        )

        logger.info("Prometheus metrics initialized")

    def track_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self.requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def track_error(self, error_type: str, endpoint: str):
        self.errors_total.labels(error_type=error_type, endpoint=endpoint).inc()

    def track_sync(self, scope: str, status: str, duration: float):
        """
        Track a finished sync run.

        Args:
            scope: items, orders or all
            status: completed or failed
            duration: Run duration in seconds
        """
        self.sync_operations_total.labels(scope=scope, status=status).inc()
        self.sync_duration.labels(scope=scope).observe(duration)

    def track_webhook(self, topic: str, status: str):
        self.webhooks_received_total.labels(topic=topic or "unknown", status=status).inc()

    def track_queue_message(self, message_type: str, outcome: str):
        self.queue_messages_total.labels(type=message_type, outcome=outcome).inc()

    def set_active_accounts(self, count: int):
        self.active_accounts.set(count)


# Global metrics instance
_metrics: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    global _metrics
    if _metrics is None:
        _metrics = PrometheusMetrics()
    return _metrics


def normalize_endpoint(path: str) -> str:
    """
    Replace ids in a path with placeholders to keep label cardinality low.

    ``/items-management/item/MLB123`` becomes ``/items-management/item/{meli_id}``.
    """
    path = UUID_PATTERN.sub("{uuid}", path)
    path = MELI_ID_PATTERN.sub("/{meli_id}", path)
    return NUMERIC_PATTERN.sub("/{id}", path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Tracks every HTTP request except the metrics endpoint itself."""

    def __init__(self, app):
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            self.metrics.track_error(type(e).__name__, normalize_endpoint(request.url.path))
            raise
        finally:
            self.metrics.track_request(
                method=request.method,
                endpoint=normalize_endpoint(request.url.path),
                status_code=status_code,
                duration=time.time() - start_time,
            )

        return response


async def metrics_endpoint() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(get_metrics().registry),
        media_type=CONTENT_TYPE_LATEST,
    )
