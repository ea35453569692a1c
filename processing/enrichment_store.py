"""
Persisted enrichment state, keyed by canonical entity name.

Every save commits immediately, so a crash mid-run loses at most the entity
being processed. Saving the same name again overwrites its record.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.logging import logger
from processing.errors import StorageError
from processing.models import EnrichmentRecord, EnrichmentStatus
from processing.registry import RegistryEntity
from processing.entity_resolution.contacts import VerifiedContact
from processing.entity_resolution.resolver import Prospect


class EnrichmentStore:
    """
    Usage:
        db = SessionLocal()
        store = EnrichmentStore(db)
        store.save_prospect(prospect)
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, company: str) -> Optional[EnrichmentRecord]:
        return self.db.scalar(
            select(EnrichmentRecord).where(EnrichmentRecord.company == company)
        )

    def all_records(self) -> list[EnrichmentRecord]:
        """All records in first-enrichment order."""
        return list(self.db.scalars(select(EnrichmentRecord).order_by(EnrichmentRecord.id)))

    def records_with_status(self, status: EnrichmentStatus) -> list[EnrichmentRecord]:
        return list(self.db.scalars(
            select(EnrichmentRecord)
            .where(EnrichmentRecord.status == status)
            .order_by(EnrichmentRecord.id)
        ))

    def _upsert(self, entity: RegistryEntity) -> EnrichmentRecord:
        record = self.get(entity.name)
        if record is None:
            record = EnrichmentRecord(company=entity.name)
            self.db.add(record)
        record.license_types = sorted(entity.license_types)
        return record

    def _commit(self, company: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not save enrichment for {company}: {e}") from e

    def save_prospect(self, prospect: Prospect, duration_ms: Optional[int] = None) -> EnrichmentRecord:
        """Store a resolution result, replacing any earlier one for the entity."""
        record = self._upsert(prospect.entity)
        record.status = (
            EnrichmentStatus.ENRICHED if prospect.contacts else EnrichmentStatus.NO_CONTACTS
        )
        record.contacts = [c.to_dict() for c in prospect.contacts]
        record.company_info = dict(prospect.company_info)
        if prospect.regulatory_hook and prospect.regulatory_hook.license_type:
            record.company_info["regulatory_hook"] = prospect.regulatory_hook.license_type
        record.confidence = prospect.confidence
        record.requires_review = prospect.requires_review
        record.error = None
        record.enriched_at = datetime.now()
        record.duration_ms = duration_ms

        self._commit(prospect.entity.name)
        return record

    def save_failure(
        self,
        entity: RegistryEntity,
        error: str,
        duration_ms: Optional[int] = None,
    ) -> EnrichmentRecord:
        """Record a failed attempt; earlier contacts for the entity are dropped."""
        record = self._upsert(entity)
        record.status = EnrichmentStatus.FAILED
        record.contacts = []
        record.company_info = None
        record.confidence = None
        record.requires_review = True
        record.error = error
        record.enriched_at = datetime.now()
        record.duration_ms = duration_ms

        self._commit(entity.name)
        return record

    def contacts_of(self, record: EnrichmentRecord) -> list[VerifiedContact]:
        return [VerifiedContact.from_dict(c) for c in record.contacts or []]

    def save_contacts(self, updates: dict[str, list[VerifiedContact]]):
        """Replace the stored contact lists of several records in one commit."""
        for company, contacts in updates.items():
            record = self.get(company)
            if record is None:
                logger.warning(f"No enrichment record for {company}, contacts not saved")
                continue
            record.contacts = [c.to_dict() for c in contacts]
        self._commit(", ".join(updates))

    def review_queue(self) -> list[EnrichmentRecord]:
        """Enriched records whose confidence is below the review threshold."""
        return [r for r in self.records_with_status(EnrichmentStatus.ENRICHED) if r.requires_review]
