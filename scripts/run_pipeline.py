#!/usr/bin/env python3
"""
Enrich registry entities with compliance contacts.

Target modes:
    (default)         Entities added since the previous snapshot
    --all             Every entity in the latest snapshot
    --company NAME    Entities whose name contains NAME

Usage:
    python scripts/run_pipeline.py
    python scripts/run_pipeline.py --company "Hashkey"
    python scripts/run_pipeline.py --all --limit 20
    python scripts/run_pipeline.py --all --retry
    python scripts/run_pipeline.py --all --force
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging import logger
from config.settings import settings
from processing.database import init_db, session_scope
from processing.enrichment_store import EnrichmentStore
from processing.errors import StorageError
from processing.pipeline import EnrichmentPipeline, select_targets
from processing.snapshots import SnapshotStore
from processing.entity_resolution.resolver import ContactResolver, ResolverConfig
from scrapers.company_site import CompanySiteScraper
from scrapers.search import SearchSession


def main():
    parser = argparse.ArgumentParser(
        description="Resolve compliance contacts for registry entities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_pipeline.py
  python scripts/run_pipeline.py --company "Hashkey"
  python scripts/run_pipeline.py --all --limit 20 --retry
        """,
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--all",
        action="store_true",
        help="Enrich every entity in the latest snapshot",
    )
    mode_group.add_argument(
        "--company",
        type=str,
        help="Enrich entities whose name contains this text (case-insensitive)",
    )

    parser.add_argument("--limit", type=int, default=0, help="Maximum entities to process")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-enrich entities that already have a result",
    )
    parser.add_argument(
        "--retry",
        action="store_true",
        help="Re-enrich entities that previously yielded no contacts",
    )
    parser.add_argument(
        "--no-website",
        action="store_true",
        help="Skip company website scraping",
    )
    parser.add_argument(
        "--export-review",
        action="store_true",
        help="Export prospects requiring review to CSV after the run",
    )

    args = parser.parse_args()

    mode = "company" if args.company else "all" if args.all else "new"

    try:
        targets = select_targets(
            SnapshotStore(settings.SNAPSHOT_DIR),
            mode=mode,
            company=args.company,
            limit=args.limit,
        )
    except StorageError as e:
        logger.error(f"Cannot read snapshots: {e}")
        sys.exit(1)

    if not targets:
        print("No entities to process")
        return

    init_db()
    site_scraper = None if args.no_website else CompanySiteScraper()

    try:
        with session_scope() as db, SearchSession() as search:
            resolver = ContactResolver(search, ResolverConfig(), site_scraper=site_scraper)
            pipeline = EnrichmentPipeline(resolver, EnrichmentStore(db))
            stats = pipeline.run(targets, force=args.force, retry=args.retry)

            if args.export_review:
                csv_path = pipeline.export_review_queue()
                print(f"\nReview queue exported to: {csv_path}")

    except StorageError as e:
        logger.error(f"Enrichment run aborted: {e}")
        sys.exit(1)
    finally:
        if site_scraper:
            site_scraper.close()

    print(f"\nDone. Enriched: {stats.enriched}, No contacts: {stats.no_contacts}, Failed: {stats.failed}")


if __name__ == "__main__":
    main()
