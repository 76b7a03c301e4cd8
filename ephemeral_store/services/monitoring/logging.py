"""
Structured JSON Logging with Correlation ID
Provides JSON formatter that automatically injects correlation IDs into all log entries
"""

import logging
import sys
import structlog
from pythonjsonlogger import jsonlogger

from ephemeral_store.config import settings
from ephemeral_store.middleware.correlation_id import get_correlation_id

SERVICE_NAME = "ephemeral-store"


class CorrelationJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with automatic correlation ID injection.

    Extends python-json-logger to add correlation_id field to every log record.
    Outside a request the field reads "none".
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['correlation_id'] = get_correlation_id()
        log_record['service'] = SERVICE_NAME
        log_record['environment'] = settings.environment


def add_correlation_id(logger, method_name, event_dict):
    """structlog processor mirroring CorrelationJsonFormatter"""
    event_dict.setdefault("correlation_id", get_correlation_id())
    return event_dict


def configure_structlog():
    """Event-style structlog output rendered as JSON lines"""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ]
    )


def setup_logging(level: str = None):
    """
    Configure structured JSON logging to stdout.

    Sets up root logger with CorrelationJsonFormatter on a stdout
    StreamHandler, and configures structlog for the service modules.

    Args:
        level: Log level name, defaults to settings.log_level

    Returns:
        logging.Handler: The configured handler (for testing)
    """
    handler = logging.StreamHandler(sys.stdout)

    formatter = CorrelationJsonFormatter(
        '%(timestamp)s %(level)s %(name)s %(message)s',
        rename_fields={
            'timestamp': 'asctime',
            'level': 'levelname'
        }
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())

    configure_structlog()

    return handler
