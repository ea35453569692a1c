"""
Contact Resolver

Turns one registry entity into a Prospect: searches for the company's
LinkedIn page and for compliance-role profiles, keeps only results that are
about the company and whose claimed employer agrees with it, adds compliance
staff listed on the company website, then ranks and scores the contacts.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Protocol

from config.logging import logger
from config.settings import settings
from processing.errors import FetchError
from processing.models import ContactSource
from processing.registry import RegistryEntity
from processing.entity_resolution.contacts import (
    DEFAULT_PRIORITY,
    SENIORITY_TABLE,
    CandidateContact,
    VerifiedContact,
    merge_contacts,
    rank_contacts,
)
from processing.entity_resolution.matchers import (
    SearchResult,
    extract_employer,
    mentions_entity,
    parse_profile_result,
    text_mentions_company,
    verify_employer,
)
from processing.entity_resolution.normalize import normalize_company_name
from processing.entity_resolution.scoring import (
    COMPLIANCE_KEYWORDS,
    ConfidenceScorer,
    ScoringWeights,
)


class SearchClient(Protocol):
    def search(self, query: str, max_results: int = 10) -> list[SearchResult]: ...


class SiteScraper(Protocol):
    def scrape(self, website: str): ...


@dataclass(frozen=True)
class RegulatoryHook:
    """What a license type obliges its holder to do, for outreach consumers."""
    license_type: str
    obligation: str
    products: tuple[str, ...] = ()


DEFAULT_REGULATORY_HOOKS: dict[str, RegulatoryHook] = {
    hook.license_type: hook
    for hook in (
        RegulatoryHook(
            "Capital Markets Services Licensee",
            "SFA s.339 requires CMS licensees to maintain robust KYC/AML procedures",
            ("KYC screening", "transaction monitoring"),
        ),
        RegulatoryHook(
            "Major Payment Institution",
            "PSA s.29 requires MPI holders to perform customer due diligence and transaction monitoring",
            ("KYC screening", "transaction monitoring", "compliance advisory"),
        ),
        RegulatoryHook(
            "Standard Payment Institution",
            "PSA requires SPI holders to run baseline anti-money-laundering controls",
            ("KYC screening",),
        ),
    )
}

DEFAULT_HOOK = RegulatoryHook(
    "",
    "Financial regulation requires KYC/AML controls",
    ("KYC screening",),
)


@dataclass
class ResolverConfig:
    """Configuration for contact resolution. Pass a modified copy to override."""
    # Title keyword -> priority (lower is more senior)
    seniority: dict[str, int] = field(default_factory=lambda: dict(SENIORITY_TABLE))
    default_priority: int = DEFAULT_PRIORITY

    # Scoring
    compliance_keywords: tuple[str, ...] = COMPLIANCE_KEYWORDS
    regulatory_hooks: dict[str, RegulatoryHook] = field(
        default_factory=lambda: dict(DEFAULT_REGULATORY_HOOKS)
    )
    default_hook: RegulatoryHook = DEFAULT_HOOK
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    confidence_threshold: float = field(default_factory=lambda: settings.CONFIDENCE_THRESHOLD)

    # Name similarity (0-100 for rapidfuzz) for merging one entity's contacts
    fuzzy_threshold: int = field(default_factory=lambda: settings.FUZZY_MATCH_THRESHOLD)

    # Website team members kept as contacts
    site_title_pattern: str = r"compliance|cco|mlro|aml|risk|legal"

    max_results: int = 10


@dataclass
class Prospect:
    """Resolution result for one entity. Re-enrichment replaces it."""
    entity: RegistryEntity
    contacts: list[VerifiedContact]
    confidence: float
    requires_review: bool
    company_info: dict = field(default_factory=dict)
    regulatory_hook: Optional[RegulatoryHook] = None

    @property
    def top_contact(self) -> Optional[VerifiedContact]:
        return self.contacts[0] if self.contacts else None


class ContactResolver:
    """
    Per-entity contact resolution.

    Usage:
        with SearchSession() as search:
            resolver = ContactResolver(search)
            prospect = resolver.resolve(entity)
    """

    def __init__(
        self,
        search: SearchClient,
        config: Optional[ResolverConfig] = None,
        site_scraper: Optional[SiteScraper] = None,
    ):
        self.search = search
        self.config = config or ResolverConfig()
        self.site_scraper = site_scraper
        self.scorer = ConfidenceScorer(
            known_license_types=self.config.regulatory_hooks,
            weights=self.config.weights,
            compliance_keywords=self.config.compliance_keywords,
            threshold=self.config.confidence_threshold,
        )
        self._site_title_re = re.compile(self.config.site_title_pattern, re.IGNORECASE)

    def find_company_linkedin(self, company_name: str) -> Optional[str]:
        """URL of the company's LinkedIn page, if a result mentions the company."""
        clean = normalize_company_name(company_name)
        results = self.search.search(
            f"{clean} site:linkedin.com/company Singapore",
            max_results=self.config.max_results,
        )
        for result in results:
            if "linkedin.com/company/" not in result.url:
                continue
            # A company page title is the company itself, no person name to strip
            if text_mentions_company(f"{result.title} {result.url}", company_name):
                return result.url.split("?")[0]
        return None

    def find_compliance_contacts(self, company_name: str) -> list[VerifiedContact]:
        """
        Compliance-role profiles for the company.

        Falls back to a broad management-role query when the compliance
        query yields nobody.
        """
        clean = normalize_company_name(company_name)

        results = self.search.search(
            f"{clean} compliance OR CCO OR MLRO OR AML site:linkedin.com/in",
            max_results=self.config.max_results,
        )
        contacts = self._contacts_from_results(results, company_name, ContactSource.SEARCH)
        if contacts:
            return contacts

        logger.debug(f"No compliance profiles for {clean}, trying broad search")
        results = self.search.search(
            f"{clean} director OR head OR chief OR VP site:linkedin.com/in",
            max_results=self.config.max_results,
        )
        return self._contacts_from_results(results, company_name, ContactSource.BROAD_SEARCH)

    def _contacts_from_results(
        self,
        results: list[SearchResult],
        company_name: str,
        source: ContactSource,
    ) -> list[VerifiedContact]:
        contacts = []
        for result in results:
            if "linkedin.com/in/" not in result.url:
                continue

            if not mentions_entity(result.title, result.snippet, company_name):
                logger.debug(f"  Not about {company_name}: {result.title}")
                continue

            profile = parse_profile_result(result.title, result.snippet, company_name)
            if profile is None:
                continue

            candidate = CandidateContact(
                name=profile.name,
                title=profile.title,
                employer=extract_employer(result.snippet),
                linkedin_url=result.url.split("?")[0],
                source=source,
            )
            if not verify_employer(candidate, company_name):
                logger.debug(
                    f"  Employer mismatch for {candidate.name}: "
                    f"'{candidate.employer}' vs '{company_name}'"
                )
                continue

            contacts.append(VerifiedContact.from_candidate(candidate))
        return contacts

    def _site_contacts(self, entity: RegistryEntity) -> tuple[list[VerifiedContact], dict]:
        if self.site_scraper is None or not entity.website:
            return [], {}

        try:
            info = self.site_scraper.scrape(entity.website)
        except FetchError as e:
            logger.warning(f"Company website unavailable for {entity.name}: {e}")
            return [], {}

        contacts = [
            VerifiedContact(name=m.name, title=m.title, source=ContactSource.COMPANY_SITE)
            for m in info.team_members
            if m.title and self._site_title_re.search(m.title)
        ]
        return contacts, {
            "description": info.description,
            "team_size": len(info.team_members),
        }

    def regulatory_hook_for(self, entity: RegistryEntity) -> RegulatoryHook:
        for license_type in sorted(entity.license_types):
            hook = self.config.regulatory_hooks.get(license_type)
            if hook:
                return hook
        return self.config.default_hook

    def resolve(self, entity: RegistryEntity) -> Prospect:
        """
        Resolve contacts for one entity.

        Raises:
            FetchError: if the search engine cannot be reached
        """
        logger.info(f"Resolving contacts: {entity.name}")

        linkedin_url = self.find_company_linkedin(entity.name)
        search_contacts = self.find_compliance_contacts(entity.name)
        site_contacts, site_info = self._site_contacts(entity)

        contacts = merge_contacts(search_contacts + site_contacts, self.config.fuzzy_threshold)
        contacts = rank_contacts(contacts, self.config.seniority, self.config.default_priority)

        top = contacts[0] if contacts else None
        confidence = self.scorer.score(entity, top)

        prospect = Prospect(
            entity=entity,
            contacts=contacts,
            confidence=confidence,
            requires_review=self.scorer.requires_review(confidence),
            company_info={
                "linkedin_url": linkedin_url,
                "description": site_info.get("description", ""),
                "team_size": site_info.get("team_size", 0),
            },
            regulatory_hook=self.regulatory_hook_for(entity),
        )

        logger.info(
            f"  {len(contacts)} contacts ({len(search_contacts)} search, "
            f"{len(site_contacts)} website), confidence {confidence:.2f}"
        )
        return prospect
