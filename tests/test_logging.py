"""
Tests for request-id tagging of log output
"""

import logging

from asgi_correlation_id.context import correlation_id

from ephemeral_store.middleware.correlation_id import get_correlation_id
from ephemeral_store.services.monitoring.logging import (
    CorrelationJsonFormatter,
    add_correlation_id,
)


class TestCorrelationId:

    def test_none_outside_request(self):
        assert get_correlation_id() == "none"

    def test_processor_adds_current_id(self):
        token = correlation_id.set("req-123")
        try:
            event = add_correlation_id(None, "info", {"event": "entry_upserted"})
        finally:
            correlation_id.reset(token)

        assert event["correlation_id"] == "req-123"

    def test_processor_keeps_explicit_id(self):
        event = add_correlation_id(None, "info", {"correlation_id": "given"})
        assert event["correlation_id"] == "given"

    def test_formatter_tags_record(self):
        formatter = CorrelationJsonFormatter("%(message)s")
        record = logging.LogRecord("sweeper", logging.INFO, __file__, 1, "expiry_sweep_complete", None, None)

        output = formatter.format(record)

        assert '"correlation_id": "none"' in output
        assert '"service": "ephemeral-store"' in output
