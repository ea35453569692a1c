"""
Enrichment Pipeline

Resolves contacts for a list of registry entities one at a time, saving after
each entity, then flags contacts claimed by more than one entity.

Usage:
    with SearchSession() as search:
        pipeline = EnrichmentPipeline(ContactResolver(search), EnrichmentStore(db))
        stats = pipeline.run(targets)
"""

import csv
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from config.logging import log_block, logger
from config.settings import settings
from processing.diff import diff_entities
from processing.enrichment_store import EnrichmentStore
from processing.models import EnrichmentStatus
from processing.registry import RegistryEntity
from processing.snapshots import SnapshotStore
from processing.entity_resolution.contacts import ContactDeduplicator
from processing.entity_resolution.resolver import ContactResolver

TARGET_MODES = ("new", "all", "company")


@dataclass
class PipelineStats:
    """Statistics from an enrichment run."""
    targets: int = 0
    enriched: int = 0
    no_contacts: int = 0
    failed: int = 0
    skipped: int = 0
    review_required: int = 0
    duplicate_groups: int = 0
    failures: list[str] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def log_summary(self):
        """Log summary statistics."""
        duration = (self.end_time - self.start_time).total_seconds() if self.end_time and self.start_time else 0
        log_block(
            "ENRICHMENT RUN COMPLETE",
            [
                f"Duration: {duration:.1f} seconds",
                f"Targets: {self.targets} ({self.skipped} skipped)",
                f"Enriched: {self.enriched}",
                f"No contacts: {self.no_contacts}",
                f"Failed: {self.failed}",
                f"Requires review: {self.review_required}",
                f"Cross-entity duplicate contacts: {self.duplicate_groups}",
            ],
            warnings=self.failures,
        )


def select_targets(
    snapshots: SnapshotStore,
    mode: str = "new",
    company: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[RegistryEntity]:
    """
    Pick the entities to enrich from the stored snapshots.

    Modes:
        new:     entities added since the previous snapshot (all on first run)
        all:     every entity in the latest snapshot
        company: entities whose name contains ``company`` (case-insensitive)
    """
    if mode not in TARGET_MODES:
        raise ValueError(f"Unknown target mode '{mode}', expected one of {TARGET_MODES}")

    latest = snapshots.load_n_previous(2)
    if not latest:
        logger.warning("No snapshots stored yet, run the watcher first")
        return []

    current = list(latest[0].entities)

    if mode == "company":
        needle = (company or "").lower()
        targets = [e for e in current if needle and needle in e.name.lower()]
        logger.info(f"Company mode: {len(targets)} matches for '{company}'")
    elif mode == "all":
        targets = current
        logger.info(f"Full run: {len(targets)} entities")
    elif len(latest) < 2:
        targets = current
        logger.info(f"First run (no previous snapshot): {len(targets)} entities")
    else:
        targets = diff_entities(current, list(latest[1].entities)).added
        logger.info(f"Diff mode: {len(targets)} new entities")

    if limit and limit > 0 and len(targets) > limit:
        logger.info(f"Limiting to {limit} of {len(targets)}")
        targets = targets[:limit]

    return targets


class EnrichmentPipeline:
    """Sequential enrichment run over a target list."""

    def __init__(
        self,
        resolver: ContactResolver,
        store: EnrichmentStore,
        deduplicator: Optional[ContactDeduplicator] = None,
    ):
        self.resolver = resolver
        self.store = store
        self.deduplicator = deduplicator or ContactDeduplicator()
        self.stats = PipelineStats()

    def _should_skip(self, entity: RegistryEntity, force: bool, retry: bool) -> Optional[str]:
        if force:
            return None
        existing = self.store.get(entity.name)
        if existing is None:
            return None
        if existing.status == EnrichmentStatus.ENRICHED:
            return "already enriched"
        if existing.status == EnrichmentStatus.NO_CONTACTS and not retry:
            return "no contacts last time, use --retry"
        return None

    def enrich_one(self, entity: RegistryEntity):
        """
        Resolve and store one entity. Any failure is stored on the entity's
        record instead of propagating.
        """
        start = time.monotonic()
        try:
            prospect = self.resolver.resolve(entity)
        except Exception as e:
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.error(f"Enrichment failed for {entity.name}: {e}")
            self.stats.failed += 1
            self.stats.failures.append(f"{entity.name}: {e}")
            return self.store.save_failure(entity, str(e), duration_ms)

        duration_ms = int((time.monotonic() - start) * 1000)
        record = self.store.save_prospect(prospect, duration_ms)

        if record.status == EnrichmentStatus.ENRICHED:
            self.stats.enriched += 1
            if prospect.requires_review:
                self.stats.review_required += 1
            logger.info(f"  -> {len(prospect.contacts)} contacts ({duration_ms}ms)")
        else:
            self.stats.no_contacts += 1
            logger.info(f"  -> no contacts ({duration_ms}ms)")
        return record

    def deduplicate(self) -> dict[str, list[str]]:
        """Flag contacts shared across enriched records and save the flags."""
        records = self.store.records_with_status(EnrichmentStatus.ENRICHED)
        results = {r.company: self.store.contacts_of(r) for r in records}

        flagged, groups = self.deduplicator.apply(results)
        if flagged:
            self.store.save_contacts(flagged)
        return groups

    def run(
        self,
        targets: list[RegistryEntity],
        force: bool = False,
        retry: bool = False,
    ) -> PipelineStats:
        """
        Enrich every target in order.

        Args:
            targets: Entities to enrich
            force: Re-enrich entities that already have a result
            retry: Re-enrich entities that previously yielded no contacts
        """
        self.stats = PipelineStats(targets=len(targets))
        self.stats.start_time = datetime.now()

        for i, entity in enumerate(targets, 1):
            reason = self._should_skip(entity, force, retry)
            if reason:
                logger.info(f"[{i}/{len(targets)}] Skipping ({reason}): {entity.name}")
                self.stats.skipped += 1
                continue

            logger.info(f"[{i}/{len(targets)}] Enriching: {entity.name}")
            self.enrich_one(entity)

        groups = self.deduplicate()
        self.stats.duplicate_groups = len(groups)

        self.stats.end_time = datetime.now()
        self.stats.log_summary()
        return self.stats

    def export_review_queue(self, path: Optional[Path] = None) -> Path:
        """
        Export enriched prospects below the confidence threshold to CSV.

        Returns:
            Path to the created CSV file
        """
        if path is None:
            path = settings.DATA_DIR / "review_queue.csv"

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow([
                "company", "license_types", "confidence",
                "contact_name", "contact_title", "contact_source", "linkedin_url",
                "low_confidence", "duplicate_of", "decision",
            ])

            for record in self.store.review_queue():
                contacts = self.store.contacts_of(record)
                top = contacts[0] if contacts else None
                writer.writerow([
                    record.company,
                    "; ".join(record.license_types or []),
                    f"{record.confidence:.2f}" if record.confidence is not None else "",
                    top.name if top else "",
                    top.title if top else "",
                    top.source.value if top else "",
                    (top.linkedin_url or "") if top else "",
                    top.low_confidence if top else "",
                    (top.duplicate_of or "") if top else "",
                    "",  # Empty column for manual decision
                ])

        logger.info(f"Exported review queue to {path}")
        return path
