"""
API middleware components.
"""

from .error_handler import ErrorHandlerMiddleware
from .correlation_id import CorrelationIdMiddleware, get_correlation_id

__all__ = [
    "ErrorHandlerMiddleware",
    "CorrelationIdMiddleware",
    "get_correlation_id",
]
