"""
Middleware Module
ASGI middleware for request processing
"""

from ephemeral_store.middleware.correlation_id import CorrelationIdMiddleware, get_correlation_id
from ephemeral_store.middleware.request_logging import RequestLoggingMiddleware

__all__ = ["CorrelationIdMiddleware", "get_correlation_id", "RequestLoggingMiddleware"]
