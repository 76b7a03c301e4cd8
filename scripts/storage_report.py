#!/usr/bin/env python3
"""
Storage report and one-off expiry sweep.

Run: python scripts/storage_report.py [--sweep] [--database-url URL]

Prints entry count, distinct owners, payload volume and database file size.
With --sweep, deletes expired entries first (same as the scheduled job).

Exit codes:
  0 - Report printed
  2 - Database unavailable
"""

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from ephemeral_store.database import database_file_path, init_db
from ephemeral_store.services.entry_store import EntryStore
from ephemeral_store.services.exceptions import StorageUnavailable
from ephemeral_store.services.stats import StatsReporter, file_size, format_bytes
from ephemeral_store.services.sweeper import ExpirySweeper


def format_report(report: dict, database_size: int) -> str:
    lines = []
    lines.append("=" * 60)
    lines.append("EPHEMERAL STORE REPORT")
    lines.append("=" * 60)
    lines.append(f"Entries:          {report['totalEntries']}")
    lines.append(f"Owners:           {report['totalUsers']}")
    lines.append(f"Payload volume:   {format_bytes(report['totalSize'] or 0)}")
    lines.append(f"Database file:    {format_bytes(database_size)}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Print storage stats, optionally sweep expired entries")
    parser.add_argument("--sweep", action="store_true", help="Delete expired entries before reporting")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    args = parser.parse_args()

    try:
        store = EntryStore(init_db(args.database_url))

        if args.sweep:
            deleted_count = ExpirySweeper(store).run()
            print(f"Deleted {deleted_count} expired entries")

        report = StatsReporter(store).report()
    except (StorageUnavailable, SQLAlchemyError) as e:
        print(f"ERROR: {e}")
        sys.exit(2)

    print(format_report(report, file_size(database_file_path())))
    sys.exit(0)


if __name__ == "__main__":
    main()
