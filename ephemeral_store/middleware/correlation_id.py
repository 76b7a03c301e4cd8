"""
Request Ids

Each save, fetch or object request gets an X-Request-ID (taken from the
client when it sends one). The id is stamped on the request log line and on
every entry_store event logged while the request runs, so a rejected save
can be traced back to the call that made it. Scheduled sweeps run outside
any request and log "none".
"""

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id

__all__ = ["CorrelationIdMiddleware", "get_correlation_id"]


def get_correlation_id() -> str:
    """Id of the request being served, or 'none' in scheduler threads."""
    return correlation_id.get() or 'none'
