"""
Prospect confidence scoring.

An additive heuristic over data quality, not a probability. Prospects below
the threshold go to the human review queue.
"""

from collections.abc import Container, Sequence
from dataclasses import dataclass
from typing import Optional

from config.settings import settings
from processing.registry import RegistryEntity

COMPLIANCE_KEYWORDS = ("compliance", "cco", "mlro", "aml", "kyc", "regulatory")


@dataclass
class ScoringWeights:
    """Points awarded per signal; the total is clamped to 1.0."""
    known_license: float = 0.3
    strong_identifier: float = 0.25
    compliance_title: float = 0.25
    company_info: float = 0.2


class ConfidenceScorer:
    """
    Score an (entity, contact) pair.

    Signals:
    - the entity holds a license type with a known regulatory mapping
    - the contact has an email address
    - the contact's title names a compliance role
    - the entity has both a name and a website
    """

    def __init__(
        self,
        known_license_types: Container[str],
        weights: Optional[ScoringWeights] = None,
        compliance_keywords: Sequence[str] = COMPLIANCE_KEYWORDS,
        threshold: Optional[float] = None,
    ):
        self.known_license_types = known_license_types
        self.weights = weights or ScoringWeights()
        self.compliance_keywords = tuple(k.lower() for k in compliance_keywords)
        self.threshold = settings.CONFIDENCE_THRESHOLD if threshold is None else threshold

    def score(self, entity: RegistryEntity, contact=None) -> float:
        score = 0.0

        if any(lt in self.known_license_types for lt in entity.license_types):
            score += self.weights.known_license

        if contact is not None:
            if (contact.email or "").strip():
                score += self.weights.strong_identifier

            title = (contact.title or "").lower()
            if any(keyword in title for keyword in self.compliance_keywords):
                score += self.weights.compliance_title

        if entity.name and entity.website:
            score += self.weights.company_info

        return round(min(score, 1.0), 4)

    def requires_review(self, score: float) -> bool:
        return score < self.threshold
