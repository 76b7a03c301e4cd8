"""
Stats Reporter
Status payload built from full-table aggregates
"""

from pathlib import Path
from typing import Optional

from ephemeral_store.services.entry_store import EntryStore

BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """
    Human-readable size, 1024-based.

    Example:
        >>> format_bytes(1536)
        '1.5 KB'
    """
    if num_bytes <= 0:
        return "0 Bytes"

    precision = max(decimals, 0)
    exponent = 0
    value = float(num_bytes)
    while value >= 1024 and exponent < len(BYTE_UNITS) - 1:
        value /= 1024
        exponent += 1
    value = round(value, precision)

    # 1.50 -> 1.5, 2.00 -> 2
    formatted = f"{value:.{precision}f}".rstrip("0").rstrip(".") if precision else f"{value:.0f}"
    return f"{formatted} {BYTE_UNITS[exponent]}"


def file_size(path: Optional[Path]) -> int:
    """Size of a file in bytes, 0 when missing or unknown"""
    if path is None or not path.exists():
        return 0
    return path.stat().st_size


class StatsReporter:
    """Read-only view over EntryStore.aggregate_stats for the status endpoint."""

    def __init__(self, store: EntryStore):
        self.store = store

    def report(self) -> dict:
        stats = self.store.aggregate_stats()
        return {
            "status": "ok",
            "totalEntries": stats.entry_count,
            "totalUsers": stats.distinct_owner_count,
            "totalSize": stats.total_byte_size,
        }
