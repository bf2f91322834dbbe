"""
Monitoring module for metrics and error tracking.
"""

from .prometheus_metrics import (
    PrometheusMetrics,
    MetricsMiddleware,
    get_metrics,
    metrics_endpoint,
)
from .sentry_config import setup_sentry, capture_exception

__all__ = [
    "PrometheusMetrics",
    "MetricsMiddleware",
    "get_metrics",
    "metrics_endpoint",
    "setup_sentry",
    "capture_exception",
]
