#!/usr/bin/env python3
"""
Tests for per-entity contact resolution, using fake search and website clients.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from processing.errors import FetchError
from processing.models import ContactSource
from processing.registry import RegistryEntity
from processing.entity_resolution.matchers import SearchResult
from processing.entity_resolution.resolver import ContactResolver, ResolverConfig
from scrapers.company_site import SiteInfo, TeamMember


class FakeSearch:
    """Returns canned results for the first query fragment found in a query."""

    def __init__(self, responses):
        self.responses = responses
        self.queries = []

    def search(self, query, max_results=10):
        self.queries.append(query)
        for fragment, results in self.responses.items():
            if fragment in query:
                return results[:max_results]
        return []


class FakeSiteScraper:
    def __init__(self, info=None, error=None):
        self.info = info or SiteInfo()
        self.error = error
        self.calls = []

    def scrape(self, website):
        self.calls.append(website)
        if self.error:
            raise self.error
        return self.info


COMPANY_PAGE = SearchResult(
    title="Ariana Investment | LinkedIn",
    url="https://sg.linkedin.com/company/ariana-investment?trk=public",
    snippet="Ariana Investment is a Singapore payments firm.",
)

COMPLIANCE_RESULTS = [
    SearchResult(
        title="John Smith - CCO - Ariana Investment | LinkedIn",
        url="https://sg.linkedin.com/in/johnsmith?trk=x",
        snippet="Chief Compliance Officer at Ariana Investment",
    ),
    # Name collision: the person is called Ariana, the employer is XYZ
    SearchResult(
        title="Ariana Lobo - Compliance Manager - XYZ Corp | LinkedIn",
        url="https://sg.linkedin.com/in/arianalobo",
        snippet="Works at XYZ Corp",
    ),
    # Mentions the company, but works elsewhere now
    SearchResult(
        title="Mary Tan - MLRO | LinkedIn",
        url="https://sg.linkedin.com/in/marytan",
        snippet="MLRO at JPMorgan Chase. Previously Ariana Investment",
    ),
    # Not a profile
    SearchResult(
        title="Ariana Investment obtains MPI licence",
        url="https://news.example.com/ariana",
        snippet="Ariana Investment compliance team grows",
    ),
    SearchResult(
        title="Peter Lim - Head of Compliance | LinkedIn",
        url="https://sg.linkedin.com/in/peterlim",
        snippet="Ariana Investment · Head of Compliance",
    ),
]

SITE_INFO = SiteInfo(
    description="Cross-border payments for Southeast Asia",
    team_members=[
        TeamMember("John Smith", "Chief Compliance Officer"),
        TeamMember("Sue Lee", "Head of Risk"),
        TeamMember("Bob Ng", "CEO"),
    ],
)


@pytest.fixture
def entity():
    return RegistryEntity(
        name="ARIANA INVESTMENT PTE. LTD.",
        website="https://ariana.sg",
        license_types={"Major Payment Institution"},
    )


@pytest.fixture
def config():
    return ResolverConfig(confidence_threshold=0.7, fuzzy_threshold=90)


def test_resolve_full_flow(entity, config):
    search = FakeSearch({
        "site:linkedin.com/company": [COMPANY_PAGE],
        "compliance OR CCO": COMPLIANCE_RESULTS,
    })
    site = FakeSiteScraper(SITE_INFO)

    prospect = ContactResolver(search, config, site_scraper=site).resolve(entity)

    assert [c.name for c in prospect.contacts] == ["John Smith", "Peter Lim", "Sue Lee"]
    assert [c.priority for c in prospect.contacts] == [1, 3, 99]
    assert [c.source for c in prospect.contacts] == [
        ContactSource.SEARCH, ContactSource.SEARCH, ContactSource.COMPANY_SITE,
    ]

    top = prospect.top_contact
    assert top.linkedin_url == "https://sg.linkedin.com/in/johnsmith"
    assert top.employer == "Ariana Investment"
    assert top.low_confidence is False

    # known license + compliance title + website, no email
    assert prospect.confidence == pytest.approx(0.75)
    assert prospect.requires_review is False
    assert prospect.regulatory_hook.license_type == "Major Payment Institution"
    assert prospect.company_info == {
        "linkedin_url": "https://sg.linkedin.com/company/ariana-investment",
        "description": "Cross-border payments for Southeast Asia",
        "team_size": 3,
    }

    assert search.queries == [
        "ARIANA INVESTMENT site:linkedin.com/company Singapore",
        "ARIANA INVESTMENT compliance OR CCO OR MLRO OR AML site:linkedin.com/in",
    ]
    assert site.calls == ["https://ariana.sg"]


def test_broad_search_fallback(entity, config):
    search = FakeSearch({
        "director OR head": [SearchResult(
            title="Ken Ho - Director - Ariana Investment | LinkedIn",
            url="https://sg.linkedin.com/in/kenho",
            snippet="Director at Ariana Investment",
        )],
    })

    prospect = ContactResolver(search, config).resolve(entity)

    assert len(search.queries) == 3
    assert search.queries[-1] == "ARIANA INVESTMENT director OR head OR chief OR VP site:linkedin.com/in"
    assert [c.name for c in prospect.contacts] == ["Ken Ho"]
    assert prospect.contacts[0].source == ContactSource.BROAD_SEARCH
    # known license + website only
    assert prospect.confidence == pytest.approx(0.5)
    assert prospect.requires_review is True


def test_no_contacts(entity, config):
    prospect = ContactResolver(FakeSearch({}), config).resolve(entity)

    assert prospect.contacts == []
    assert prospect.top_contact is None
    assert prospect.company_info["linkedin_url"] is None
    assert prospect.requires_review is True


def test_company_page_must_mention_company(entity, config):
    search = FakeSearch({
        "site:linkedin.com/company": [SearchResult(
            title="Unrelated Payments | LinkedIn",
            url="https://sg.linkedin.com/company/unrelated",
        )],
    })
    assert ContactResolver(search, config).find_company_linkedin(entity.name) is None


def test_website_failure_is_not_fatal(entity, config):
    search = FakeSearch({"compliance OR CCO": COMPLIANCE_RESULTS})
    site = FakeSiteScraper(error=FetchError("https://ariana.sg", "timed out"))

    prospect = ContactResolver(search, config, site_scraper=site).resolve(entity)

    assert [c.name for c in prospect.contacts] == ["John Smith", "Peter Lim"]
    assert prospect.company_info["team_size"] == 0


def test_search_failure_propagates(entity, config):
    class BrokenSearch:
        def search(self, query, max_results=10):
            raise FetchError("https://html.duckduckgo.com/html/", "HTTP 202")

    with pytest.raises(FetchError):
        ContactResolver(BrokenSearch(), config).resolve(entity)


def test_injected_config_changes_ranking_and_scoring(entity):
    config = ResolverConfig(
        seniority={"head of risk": 1, "chief compliance officer": 2, "cco": 2},
        regulatory_hooks={},
        confidence_threshold=0.9,
        fuzzy_threshold=90,
    )
    search = FakeSearch({"compliance OR CCO": COMPLIANCE_RESULTS})
    site = FakeSiteScraper(SITE_INFO)

    prospect = ContactResolver(search, config, site_scraper=site).resolve(entity)

    assert prospect.contacts[0].name == "Sue Lee"
    assert prospect.contacts[0].priority == 1
    # no known license, "Head of Risk" is not a compliance keyword
    assert prospect.confidence == pytest.approx(0.2)
    assert prospect.regulatory_hook == config.default_hook
