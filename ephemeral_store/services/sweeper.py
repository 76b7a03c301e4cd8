"""
Expiry Sweeper
Physically deletes entries whose TTL has run out
"""

import threading
from typing import Callable, Optional
import structlog

from ephemeral_store.services.entry_store import EntryStore, current_millis

logger = structlog.get_logger(__name__)


class ExpirySweeper:
    """
    One sweep = one delete of every entry older than now - TTL.

    Reads already hide expired entries, so sweeps only reclaim space. A run
    that finds the previous one still in progress is skipped rather than
    queued behind it.
    """

    def __init__(
        self,
        store: EntryStore,
        ttl_ms: Optional[int] = None,
        clock: Callable[[], int] = current_millis,
    ):
        self.store = store
        self.ttl_ms = ttl_ms if ttl_ms is not None else store.ttl_ms
        self.clock = clock
        self._lock = threading.Lock()
        self.logger = logger.bind(service="expiry_sweeper")

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run(self) -> Optional[int]:
        """
        Sweep once.

        Returns:
            Number of deleted entries, or None if a sweep was already running

        Raises:
            StorageUnavailable: Propagated from the store
        """
        if not self._lock.acquire(blocking=False):
            self.logger.warning("expiry_sweep_skipped", reason="previous_run_in_progress")
            return None

        try:
            cutoff = self.clock() - self.ttl_ms
            deleted_count = self.store.delete_older_than(cutoff)
            self.logger.info("expiry_sweep_complete", deleted_count=deleted_count, cutoff=cutoff)
            return deleted_count
        finally:
            self._lock.release()
