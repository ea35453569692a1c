"""
Registry watch run: scrape, normalize, snapshot, diff, report.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from config.logging import logger
from config.settings import settings
from processing.diff import Diff, diff_entities
from processing.errors import EmptyRegistryError, StorageError
from processing.registry import RegistryNormalizer
from processing.report import generate_markdown_report, generate_text_summary
from processing.snapshots import SnapshotStore


@dataclass
class WatchResult:
    snapshot_id: str
    count: int
    diff: Diff
    report_path: Path
    summary: str
    first_run: bool = False


def run_watch(
    scraper,
    store: SnapshotStore,
    normalizer: Optional[RegistryNormalizer] = None,
    report_dir: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> WatchResult:
    """
    One watch cycle.

    Args:
        scraper: Anything with ``scrape_all() -> list[dict]`` (raw rows)
        store: Snapshot history
        normalizer: Row normalizer (a fresh one by default)
        report_dir: Where the markdown report goes (REPORT_DIR by default)

    Raises:
        EmptyRegistryError: if the scrape yields no entities; history is
            left untouched
        StorageError: if the snapshot or report cannot be written
    """
    normalizer = normalizer or RegistryNormalizer()
    report_dir = Path(report_dir or settings.REPORT_DIR)
    now = now or datetime.now(timezone.utc)

    rows = scraper.scrape_all()
    entities = normalizer.normalize(rows)
    normalizer.stats.log_summary()

    if not entities:
        raise EmptyRegistryError(
            f"Registry scrape returned 0 entities from {len(rows)} rows; "
            "refusing to overwrite history (source format may have changed)"
        )

    previous = store.load_latest()
    snapshot_id = store.save(entities, now=now)

    if previous is None:
        logger.info("First run: every entity counts as added")
        diff = Diff(added=list(entities), removed=[])
    else:
        diff = diff_entities(entities, list(previous.entities))
    logger.info(f"Diff: +{len(diff.added)} / -{len(diff.removed)}")

    report = generate_markdown_report(diff, now.isoformat(), len(entities))
    summary = generate_text_summary(diff)

    report_path = report_dir / f"report-{now.strftime('%Y-%m-%d')}.md"
    try:
        report_dir.mkdir(parents=True, exist_ok=True)
        report_path.write_text(report, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Cannot write report {report_path}: {e}") from e
    logger.info(f"Report written to {report_path}")

    return WatchResult(
        snapshot_id=snapshot_id,
        count=len(entities),
        diff=diff,
        report_path=report_path,
        summary=summary,
        first_run=previous is None,
    )
