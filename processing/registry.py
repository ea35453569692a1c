"""
Registry normalization.

The FID print view lists one row per (institution, license) combination. This
module folds those raw rows into one RegistryEntity per canonical name and
keeps a count of every row it had to drop.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from config.logging import log_block, logger


@dataclass
class RegistryEntity:
    """One registrant, keyed by the name exactly as the registry prints it."""
    name: str
    fid: str = ""
    detail_url: str = ""
    address: str = ""
    phone: str = ""
    website: str = ""
    sector: str = ""
    license_types: set[str] = field(default_factory=set)
    activities: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        """Serialize to the snapshot file shape (sets become sorted lists)."""
        return {
            "name": self.name,
            "fid": self.fid,
            "detailUrl": self.detail_url,
            "address": self.address,
            "phone": self.phone,
            "website": self.website,
            "sector": self.sector,
            "licenseTypes": sorted(self.license_types),
            "activities": sorted(self.activities),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RegistryEntity":
        # Older captures stored a single comma-joined "licenseType" string
        license_types = data.get("licenseTypes")
        if license_types is None and data.get("licenseType"):
            license_types = [t.strip() for t in data["licenseType"].split(",")]

        return cls(
            name=data["name"],
            fid=data.get("fid") or "",
            detail_url=data.get("detailUrl") or "",
            address=data.get("address") or "",
            phone=data.get("phone") or "",
            website=data.get("website") or "",
            sector=data.get("sector") or "",
            license_types=set(license_types or []),
            activities=set(data.get("activities") or []),
        )

    def __repr__(self) -> str:
        return f"<RegistryEntity({self.name}, fid={self.fid or '-'}, licenses={len(self.license_types)})>"


@dataclass
class NormalizationStats:
    """Statistics from a normalization pass."""
    rows_seen: int = 0
    rows_merged: int = 0
    rows_skipped: int = 0
    entities: int = 0
    skip_reasons: Counter = field(default_factory=Counter)

    def skip(self, reason: str):
        self.rows_skipped += 1
        self.skip_reasons[reason] += 1

    def log_summary(self):
        """Log summary statistics."""
        log_block(
            "REGISTRY NORMALIZATION COMPLETE",
            [
                f"Rows seen: {self.rows_seen}",
                f"Entities: {self.entities} ({self.rows_merged} rows merged into existing)",
                f"Rows skipped: {self.rows_skipped}",
            ],
            warnings=[f"{reason}: {count}" for reason, count in self.skip_reasons.most_common()],
        )


class RegistryNormalizer:
    """
    Merges raw registry rows into canonical entities.

    Rows are mappings with at least ``name`` and ``license_type``; the other
    keys (fid, detail_url, address, phone, website, sector, activity) are
    optional. The first row for a name supplies the scalar fields, later rows
    only contribute license types and activities.

    Usage:
        normalizer = RegistryNormalizer()
        entities = normalizer.normalize(rows)
        normalizer.stats.log_summary()
    """

    REQUIRED_FIELDS = ("name", "license_type")

    def __init__(self):
        self.stats = NormalizationStats()

    def normalize(self, rows: Iterable[Any]) -> list[RegistryEntity]:
        """
        Fold rows into entities, preserving first-occurrence order.

        Malformed rows never raise: they are counted under a skip reason.
        """
        self.stats = NormalizationStats()
        entities: dict[str, RegistryEntity] = {}

        for row in rows:
            self.stats.rows_seen += 1

            reason = self._validate(row)
            if reason:
                self.stats.skip(reason)
                continue

            name = row["name"].strip()
            license_type = row["license_type"].strip()
            activity = (row.get("activity") or "").strip()

            existing = entities.get(name)
            if existing is not None:
                existing.license_types.add(license_type)
                if activity:
                    existing.activities.add(activity)
                self.stats.rows_merged += 1
                continue

            entities[name] = RegistryEntity(
                name=name,
                fid=self._text(row, "fid"),
                detail_url=self._text(row, "detail_url"),
                address=self._text(row, "address"),
                phone=self._text(row, "phone"),
                website=self._text(row, "website"),
                sector=self._text(row, "sector"),
                license_types={license_type},
                activities={activity} if activity else set(),
            )

        self.stats.entities = len(entities)
        if self.stats.rows_skipped:
            logger.warning(
                f"Skipped {self.stats.rows_skipped} of {self.stats.rows_seen} registry rows: "
                f"{dict(self.stats.skip_reasons)}"
            )
        return list(entities.values())

    def _validate(self, row: Any) -> Optional[str]:
        """Return a skip reason, or None when the row is usable."""
        if not isinstance(row, Mapping):
            return "not_a_mapping"

        for key in self.REQUIRED_FIELDS:
            value = row.get(key)
            if value is None:
                return f"missing_{key}"
            if not isinstance(value, str):
                return f"invalid_{key}"
            if not value.strip():
                return f"empty_{key}"

        return None

    @staticmethod
    def _text(row: Mapping[str, Any], key: str) -> str:
        value = row.get(key)
        return value.strip() if isinstance(value, str) else ""
