"""
Monitoring Module
Exports for structured logging and error tracking
"""

from ephemeral_store.services.monitoring.logging import (
    setup_logging,
    configure_structlog,
    CorrelationJsonFormatter,
)
from ephemeral_store.services.monitoring.error_tracking import init_sentry, capture_job_failure

__all__ = [
    "setup_logging",
    "configure_structlog",
    "CorrelationJsonFormatter",
    "init_sentry",
    "capture_job_failure",
]
