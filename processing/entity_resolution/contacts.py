"""
Contact records, ranking and deduplication.

Ranking is per entity (most senior compliance role first). Deduplication runs
across the whole result set of an enrichment run: a person claimed by more
than one entity is flagged on every entity after the first, never removed.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, replace
from typing import Optional

from rapidfuzz import fuzz

from config.logging import logger
from processing.models import ContactSource


@dataclass
class CandidateContact:
    """A person inferred from a search result or a company web page."""
    name: str
    title: str
    employer: Optional[str] = None
    linkedin_url: Optional[str] = None
    email: Optional[str] = None
    source: ContactSource = ContactSource.SEARCH
    priority: int = 99

    def to_dict(self) -> dict:
        data = asdict(self)
        data["source"] = self.source.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "CandidateContact":
        return cls(**_contact_kwargs(data))


@dataclass
class VerifiedContact(CandidateContact):
    """
    A candidate that passed employer verification or carried no employer
    evidence. The two flags are set only by ContactDeduplicator.
    """
    low_confidence: bool = False
    duplicate_of: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "VerifiedContact":
        return cls(
            **_contact_kwargs(data),
            low_confidence=bool(data.get("low_confidence", False)),
            duplicate_of=data.get("duplicate_of"),
        )

    @classmethod
    def from_candidate(cls, candidate: CandidateContact) -> "VerifiedContact":
        return cls(**{k: getattr(candidate, k) for k in _CANDIDATE_FIELDS})


_CANDIDATE_FIELDS = ("name", "title", "employer", "linkedin_url", "email", "source", "priority")


def _contact_kwargs(data: Mapping) -> dict:
    return {
        "name": data.get("name") or "",
        "title": data.get("title") or "",
        "employer": data.get("employer"),
        "linkedin_url": data.get("linkedin_url") or None,
        "email": data.get("email") or None,
        "source": ContactSource(data.get("source") or ContactSource.SEARCH.value),
        "priority": int(data.get("priority", DEFAULT_PRIORITY)),
    }


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

# Lower is more senior
SENIORITY_TABLE: dict[str, int] = {
    "chief compliance officer": 1,
    "cco": 1,
    "mlro": 2,
    "money laundering reporting officer": 2,
    "head of compliance": 3,
    "vp compliance": 4,
    "vice president compliance": 4,
    "director of compliance": 5,
    "compliance director": 5,
}

DEFAULT_PRIORITY = 99


def _normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w&]+", " ", (text or "").lower())).strip()


def _contains_role(normalized_title: str, role: str) -> bool:
    role = _normalize_text(role)
    if not role:
        return False
    if " " in role:
        return role in normalized_title
    return re.search(rf"\b{re.escape(role)}\b", normalized_title) is not None


def title_priority(
    title: str,
    seniority: Mapping[str, int] = SENIORITY_TABLE,
    default: int = DEFAULT_PRIORITY,
) -> int:
    """
    Priority of a job title: the most senior table role it contains.

    Containment is case-insensitive. Single-word roles (CCO, MLRO) must match
    a whole word, so "Account Manager" does not count as a CCO; multi-word
    roles match anywhere, so "SVP Compliance" counts as VP compliance.
    """
    normalized = _normalize_text(title)
    if not normalized:
        return default

    matches = [priority for role, priority in seniority.items() if _contains_role(normalized, role)]
    return min(matches) if matches else default


def rank_contacts(
    contacts: Iterable[CandidateContact],
    seniority: Mapping[str, int] = SENIORITY_TABLE,
    default: int = DEFAULT_PRIORITY,
) -> list:
    """Copies of the contacts with priority set, most senior first (stable)."""
    ranked = [
        replace(contact, priority=title_priority(contact.title, seniority, default))
        for contact in contacts
    ]
    return sorted(ranked, key=lambda c: c.priority)


# ---------------------------------------------------------------------------
# Within-entity merge
# ---------------------------------------------------------------------------

def merge_contacts(contacts: Iterable[CandidateContact], threshold: int = 90) -> list:
    """
    Collapse near-duplicate people found by different sources for one entity.

    The first occurrence is kept; a later contact whose name scores at least
    ``threshold`` (rapidfuzz token-sort ratio) against it is dropped, and any
    LinkedIn URL, email or employer it carried fills the kept record's gaps.
    """
    merged: list = []
    for contact in contacts:
        name = _normalize_text(contact.name)
        if not name:
            continue

        for i, kept in enumerate(merged):
            if fuzz.token_sort_ratio(name, _normalize_text(kept.name)) >= threshold:
                merged[i] = replace(
                    kept,
                    linkedin_url=kept.linkedin_url or contact.linkedin_url,
                    email=kept.email or contact.email,
                    employer=kept.employer or contact.employer,
                )
                logger.debug(f"Merged contact '{contact.name}' into '{kept.name}'")
                break
        else:
            merged.append(contact)

    return merged


# ---------------------------------------------------------------------------
# Cross-entity deduplication
# ---------------------------------------------------------------------------

def contact_key(contact: CandidateContact) -> str:
    """LinkedIn URL when known, else normalized "name|title"."""
    if contact.linkedin_url:
        return contact.linkedin_url.strip().rstrip("/").lower()
    return f"{_normalize_text(contact.name)}|{_normalize_text(contact.title)}"


class ContactDeduplicator:
    """
    Flags people attributed to more than one entity in a result set.

    Usage:
        dedup = ContactDeduplicator()
        flagged, groups = dedup.apply({"Alpha": [...], "Beta": [...]})
    """

    def apply(
        self,
        results: Mapping[str, list[VerifiedContact]],
    ) -> tuple[dict[str, list[VerifiedContact]], dict[str, list[str]]]:
        """
        Flag cross-entity duplicates.

        Args:
            results: entity name -> contacts, in the order entities were
                processed (first-seen entity owns a shared contact)

        Returns:
            (results with flags applied, key -> entity names for every key
            claimed by more than one entity). List lengths never change.
        """
        owners: dict[str, str] = {}
        groups: dict[str, list[str]] = {}
        flagged: dict[str, list[VerifiedContact]] = {}

        for entity_name, contacts in results.items():
            out = []
            for contact in contacts:
                key = contact_key(contact)
                owner = owners.setdefault(key, entity_name)

                if owner == entity_name:
                    out.append(replace(contact, low_confidence=False, duplicate_of=None))
                    continue

                out.append(replace(contact, low_confidence=True, duplicate_of=owner))
                group = groups.setdefault(key, [owner])
                if entity_name not in group:
                    group.append(entity_name)
            flagged[entity_name] = out

        if groups:
            logger.info(f"Cross-entity duplicates: {len(groups)} contacts shared between entities")
            for key, names in groups.items():
                logger.debug(f"  {key}: {', '.join(names)}")

        return flagged, groups
