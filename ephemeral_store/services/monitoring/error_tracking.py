"""
Sentry Error Tracking
Optional error reporting for request handlers and background jobs
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from ephemeral_store.config import settings

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """
    Initialize Sentry SDK with FastAPI integration.

    If SENTRY_DSN is not configured, logs warning and returns (disabled).
    This allows graceful degradation in development environments.

    Returns:
        True when Sentry was initialized
    """
    if settings.sentry_dsn is None:
        logger.warning("Sentry DSN not configured - error tracking disabled")
        return False

    environment = settings.sentry_environment or settings.environment
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=environment,
        traces_sample_rate=0.1,  # 10% of requests traced
        integrations=[
            FastApiIntegration(),
        ],
    )

    logger.info("Sentry initialized", extra={"environment": environment})
    return True


def capture_job_failure(job: str, error: Exception, context: Optional[dict] = None) -> None:
    """
    Report a background job failure with the job name attached.

    No-op when Sentry has not been initialized.
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("job", job)
        if context:
            scope.set_context("job", context)
        sentry_sdk.capture_exception(error)
