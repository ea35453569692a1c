"""
Registry Scout - Database Models

SQLAlchemy ORM models for persisted enrichment state.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    Integer,
    Text,
    func,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# Enums
class EnrichmentStatus(PyEnum):
    ENRICHED = "enriched"
    NO_CONTACTS = "no_contacts"
    FAILED = "failed"


class ContactSource(PyEnum):
    """Where a candidate contact was found."""
    SEARCH = "search"                # Compliance-role profile search
    BROAD_SEARCH = "broad-search"    # Fallback management-role search
    COMPANY_SITE = "company-site"    # Company website team/about page


class EnrichmentRecord(Base):
    """
    Latest enrichment result for one registry entity.

    One row per canonical entity name; re-enrichment overwrites the row
    (last write wins). Row ids follow first-enrichment order, which the
    cross-entity contact deduplication relies on.
    """

    __tablename__ = "enrichment_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    license_types: Mapped[Optional[list]] = mapped_column(JSON, default=list)

    status: Mapped[EnrichmentStatus] = mapped_column(
        Enum(EnrichmentStatus), nullable=False, index=True
    )
    contacts: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    company_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    confidence: Mapped[Optional[float]] = mapped_column(Float)
    requires_review: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error: Mapped[Optional[str]] = mapped_column(Text)

    enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<EnrichmentRecord(company={self.company}, status={self.status.value}, contacts={len(self.contacts or [])})>"
