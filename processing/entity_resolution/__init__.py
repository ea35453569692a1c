"""
Entity Resolution Module

Resolves registry entities into ranked, employer-verified contacts:
- Company name normalization and significant keywords
- Search result matching with person-name collision guard
- Employer extraction (strategy chain) and verification
- Seniority ranking, rapidfuzz contact merge, cross-entity deduplication
- Configurable confidence scoring
"""

from processing.entity_resolution.normalize import (
    normalize_company_name,
    significant_keywords,
)
from processing.entity_resolution.matchers import (
    SearchResult,
    extract_employer,
    mentions_entity,
    parse_profile_result,
    verify_employer,
)
from processing.entity_resolution.contacts import (
    CandidateContact,
    ContactDeduplicator,
    VerifiedContact,
    merge_contacts,
    rank_contacts,
)
from processing.entity_resolution.scoring import ConfidenceScorer, ScoringWeights
from processing.entity_resolution.resolver import (
    ContactResolver,
    Prospect,
    RegulatoryHook,
    ResolverConfig,
)

__all__ = [
    "normalize_company_name",
    "significant_keywords",
    "SearchResult",
    "extract_employer",
    "mentions_entity",
    "parse_profile_result",
    "verify_employer",
    "CandidateContact",
    "ContactDeduplicator",
    "VerifiedContact",
    "merge_contacts",
    "rank_contacts",
    "ConfidenceScorer",
    "ScoringWeights",
    "ContactResolver",
    "Prospect",
    "RegulatoryHook",
    "ResolverConfig",
]
