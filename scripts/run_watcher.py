#!/usr/bin/env python3
"""
Run one registry watch cycle.

Scrapes the watched MAS FID categories, stores a snapshot, diffs it against
the previous one and writes the daily report.

Usage:
    python scripts/run_watcher.py
    python scripts/run_watcher.py --history
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging import logger
from config.settings import settings
from processing.errors import EmptyRegistryError, StorageError
from processing.snapshots import SnapshotStore
from processing.watcher import run_watch
from scrapers.mas_fid import MASFIDScraper


def main():
    parser = argparse.ArgumentParser(
        description="Scrape the registry, snapshot it and report changes"
    )
    parser.add_argument(
        "--snapshot-dir",
        type=Path,
        default=settings.SNAPSHOT_DIR,
        help=f"Snapshot directory (default: {settings.SNAPSHOT_DIR})",
    )
    parser.add_argument(
        "--report-dir",
        type=Path,
        default=settings.REPORT_DIR,
        help=f"Report directory (default: {settings.REPORT_DIR})",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="List stored snapshots and exit",
    )

    args = parser.parse_args()
    store = SnapshotStore(args.snapshot_dir)

    if args.history:
        for entry in store.history():
            print(f"{entry['snapshot_id']}  {entry['count']:>5} entities  {entry['timestamp']}")
        return

    scraper = MASFIDScraper()
    try:
        result = run_watch(scraper, store, report_dir=args.report_dir)
    except (EmptyRegistryError, StorageError) as e:
        logger.error(f"Watch run aborted: {e}")
        sys.exit(1)
    finally:
        scraper.close()

    print("=" * 60)
    print(result.summary)
    print("=" * 60)
    print(f"Snapshot: {result.snapshot_id} ({result.count} entities)")
    print(f"Report:   {result.report_path}")


if __name__ == "__main__":
    main()
