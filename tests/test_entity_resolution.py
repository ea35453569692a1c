#!/usr/bin/env python3
"""
Tests for the entity resolution module.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from processing.models import ContactSource
from processing.registry import RegistryEntity
from processing.entity_resolution import (
    CandidateContact,
    ConfidenceScorer,
    ContactDeduplicator,
    ScoringWeights,
    VerifiedContact,
    extract_employer,
    mentions_entity,
    merge_contacts,
    normalize_company_name,
    parse_profile_result,
    rank_contacts,
    significant_keywords,
    verify_employer,
)
from processing.entity_resolution.contacts import contact_key, title_priority
from processing.entity_resolution.matchers import extract_person_name


# =============================================================================
# Name normalization
# =============================================================================

@pytest.mark.parametrize("raw, expected", [
    ("HASHKEY DIGITAL ASSET GROUP PTE. LTD.", "HASHKEY DIGITAL ASSET GROUP"),
    ("ABC (SINGAPORE) PTE LTD", "ABC"),
    ("OpenAI", "OpenAI"),
    ("Acme Private Limited", "Acme"),
    ("Foo Bar LLC", "Foo Bar"),
    ("Globex Co., Ltd.", "Globex"),
    ("Initech GmbH", "Initech"),
    ("Wayne Pty Ltd", "Wayne"),
    ("Stark Industries Inc.", "Stark Industries"),
    ("XYZ (CAYMAN) LTD", "XYZ"),
    ("ABC (BVI) LIMITED", "ABC"),
    ("Nomura Asset Management (Japan) Pte. Ltd.", "Nomura Asset Management"),
    ("DEF (LUXEMBOURG) S.A.", "DEF"),
])
def test_normalize_company_name(raw, expected):
    assert normalize_company_name(raw) == expected


def test_normalize_only_strips_trailing_suffixes():
    """Suffix-like words that are not at the end, or not whole words, stay."""
    assert normalize_company_name("LIMITED EDITION CAPITAL") == "LIMITED EDITION CAPITAL"
    assert normalize_company_name("ABC LTD HOLDINGS") == "ABC LTD HOLDINGS"
    assert normalize_company_name("BIGCORP") == "BIGCORP"


def test_normalize_keeps_name_made_only_of_a_suffix():
    assert normalize_company_name("LIMITED") == "LIMITED"


@pytest.mark.parametrize("raw", [
    "HASHKEY DIGITAL ASSET GROUP PTE. LTD.",
    "ABC (SINGAPORE) PTE LTD",
    "XYZ (S) PTE. LTD. (ASIA PACIFIC)",
    "Foo Holdings Ltd Pte Ltd",
    "  spaced   out  name  inc ",
    "",
    "OpenAI",
])
def test_normalize_is_idempotent(raw):
    once = normalize_company_name(raw)
    assert normalize_company_name(once) == once


def test_significant_keywords():
    assert significant_keywords("HASHKEY DIGITAL ASSET GROUP PTE. LTD.") == ["hashkey"]
    assert significant_keywords("ARIANA INVESTMENT PTE. LTD.") == ["ariana"]
    assert significant_keywords("GLOBAL CAPITAL MANAGEMENT PTE LTD") == []
    # Longest first
    assert significant_keywords("Blue Ocean Fintech Pte Ltd") == ["fintech", "ocean", "blue"]


# =============================================================================
# Search result matching
# =============================================================================

def test_mentions_entity_ignores_person_name_collision():
    """A person named Ariana is not evidence for Ariana Investment."""
    assert mentions_entity(
        "Ariana Lobo - Compliance Manager - XYZ Corp",
        "Works at XYZ Corp",
        "ARIANA INVESTMENT PTE. LTD.",
    ) is False


def test_mentions_entity_matches_company_mention():
    assert mentions_entity(
        "John Smith - CCO - Ariana Investment",
        "Chief Compliance Officer at Ariana Investment",
        "ARIANA INVESTMENT PTE. LTD.",
    ) is True


def test_mentions_entity_generic_name_needs_full_name():
    company = "GLOBAL CAPITAL MANAGEMENT PTE LTD"
    assert mentions_entity("Jane Tan - CFO", "CFO at Global Capital Management", company) is True
    assert mentions_entity("Jane Tan - CFO", "CFO at Global Markets Capital", company) is False


def test_mentions_entity_without_separator_keeps_all_words():
    """No separator means no person name to remove."""
    assert mentions_entity("HashKey Group CEO", "", "HASHKEY DIGITAL ASSET GROUP PTE. LTD.") is True


def test_extract_person_name():
    assert extract_person_name("Jane Chen - CCO - ABC Pte Ltd | LinkedIn") == "Jane Chen"
    assert extract_person_name("Jane Chen | LinkedIn") == "Jane Chen"
    assert extract_person_name("Mary-Jane Lim – Head of Risk") == "Mary-Jane Lim"
    assert extract_person_name("HashKey Group CEO") is None
    assert extract_person_name("") is None


def test_parse_profile_result_from_title():
    match = parse_profile_result("Jane Chen - CCO - ABC Pte Ltd | LinkedIn", "", "ABC PTE LTD")
    assert match.name == "Jane Chen"
    assert match.title == "CCO"


def test_parse_profile_result_title_from_snippet():
    match = parse_profile_result(
        "Jane Chen | LinkedIn",
        "Head of Compliance at ABC. Based in Singapore.",
        "ABC PTE LTD",
    )
    assert match.name == "Jane Chen"
    assert match.title == "Head of Compliance"


def test_parse_profile_result_company_in_second_segment():
    match = parse_profile_result(
        "Jane Chen - Ariana Investment | LinkedIn",
        "MLRO at Ariana Investment.",
        "ARIANA INVESTMENT PTE. LTD.",
    )
    assert match.title == "MLRO"


def test_parse_profile_result_unknown_title():
    match = parse_profile_result("Jane Chen | LinkedIn", "", "ABC PTE LTD")
    assert match.title == "Unknown Title"


def test_parse_profile_result_rejects_empty_title():
    assert parse_profile_result("", "snippet", "ABC") is None
    assert parse_profile_result("x" * 80 + " - CCO", "", "ABC") is None


# =============================================================================
# Employer extraction and verification
# =============================================================================

@pytest.mark.parametrize("snippet, expected", [
    ("Chief Compliance Officer at Ariana Investment", "Ariana Investment"),
    ("MLRO @ HashKey Group. Singapore", "HashKey Group"),
    ("HashKey Group · Compliance Manager", "HashKey Group"),
    ("Experience: Ariana Investment · Education: NUS", "Ariana Investment"),
    ("Compliance professional based in Singapore", None),
    ("", None),
])
def test_extract_employer(snippet, expected):
    assert extract_employer(snippet) == expected


def _contact(employer=None, **kwargs):
    return CandidateContact(name=kwargs.pop("name", "Jane Chen"), title=kwargs.pop("title", "CCO"),
                            employer=employer, **kwargs)


def test_verify_employer():
    target = "APOLLO MANAGEMENT INTERNATIONAL PTE LTD"
    assert verify_employer(_contact("Apollo Management"), target) is True
    assert verify_employer(_contact("JPMorgan Chase"), target) is False


def test_verify_employer_without_evidence_passes():
    assert verify_employer(_contact(None), "ANYTHING PTE LTD") is True
    assert verify_employer(_contact(None), "") is True


def test_verify_employer_generic_target_needs_full_name():
    target = "GLOBAL CAPITAL MANAGEMENT PTE LTD"
    assert verify_employer(_contact("Global Capital Management"), target) is True
    assert verify_employer(_contact("Global Payments"), target) is False


# =============================================================================
# Ranking
# =============================================================================

def test_rank_contacts_by_seniority():
    titles = ["Software Engineer", "Head of Compliance", "CCO", "MLRO"]
    ranked = rank_contacts([_contact(title=t) for t in titles])

    assert [c.title for c in ranked] == ["CCO", "MLRO", "Head of Compliance", "Software Engineer"]
    assert [c.priority for c in ranked] == [1, 2, 3, 99]


def test_rank_contacts_is_stable():
    contacts = [_contact(name=n, title="Compliance Director") for n in ("A", "B", "C")]
    assert [c.name for c in rank_contacts(contacts)] == ["A", "B", "C"]


def test_rank_contacts_returns_copies():
    original = _contact(title="CCO")
    ranked = rank_contacts([original])
    assert ranked[0].priority == 1
    assert original.priority == 99


def test_title_priority():
    assert title_priority("Chief Compliance Officer") == 1
    assert title_priority("chief compliance officer & MLRO") == 1
    assert title_priority("VP, Compliance") == 4
    assert title_priority("Money Laundering Reporting Officer (MLRO)") == 2
    assert title_priority("SVP Compliance") == 4
    assert title_priority("AVP Compliance") == 4
    assert title_priority("Group CCO") == 1
    assert title_priority("Compliance Director, APAC") == 5
    assert title_priority("Account Manager") == 99
    assert title_priority("Accounts Officer, MLROs team lead") == 99
    assert title_priority("") == 99
    assert title_priority("Head of Legal", seniority={"head of legal": 7}) == 7


# =============================================================================
# Merging and deduplication
# =============================================================================

def test_merge_contacts_backfills_from_duplicate():
    contacts = [
        _contact(name="Jane Chen", linkedin_url="https://www.linkedin.com/in/janechen"),
        _contact(name="jane  chen", email="jane@abc.sg", source=ContactSource.COMPANY_SITE),
        _contact(name="John Tan"),
    ]
    merged = merge_contacts(contacts, threshold=90)

    assert [c.name for c in merged] == ["Jane Chen", "John Tan"]
    assert merged[0].linkedin_url == "https://www.linkedin.com/in/janechen"
    assert merged[0].email == "jane@abc.sg"
    assert merged[0].source == ContactSource.SEARCH


def test_merge_contacts_token_order():
    merged = merge_contacts([_contact(name="Chen Jane"), _contact(name="Jane Chen")], threshold=90)
    assert len(merged) == 1


def test_contact_key():
    assert contact_key(_contact(linkedin_url="https://www.linkedin.com/in/Jane/")) == \
        "https://www.linkedin.com/in/jane"
    assert contact_key(_contact(name="Jane  Chen", title="CCO")) == "jane chen|cco"


def test_dedup_flags_later_entities_and_keeps_lengths():
    url = "https://www.linkedin.com/in/janechen"
    results = {
        "Alpha": [VerifiedContact(name="Jane Chen", title="CCO", linkedin_url=url)],
        "Beta": [
            VerifiedContact(name="Jane Chen", title="CCO", linkedin_url=url),
            VerifiedContact(name="John Tan", title="MLRO"),
        ],
        "Gamma": [VerifiedContact(name="J. Chen", title="Compliance", linkedin_url=url)],
    }

    flagged, groups = ContactDeduplicator().apply(results)

    assert {name: len(c) for name, c in flagged.items()} == {"Alpha": 1, "Beta": 2, "Gamma": 1}
    assert flagged["Alpha"][0].low_confidence is False
    assert flagged["Alpha"][0].duplicate_of is None
    assert flagged["Beta"][0].low_confidence is True
    assert flagged["Beta"][0].duplicate_of == "Alpha"
    assert flagged["Beta"][1].low_confidence is False
    assert flagged["Gamma"][0].duplicate_of == "Alpha"
    assert groups == {url: ["Alpha", "Beta", "Gamma"]}


def test_dedup_without_url_uses_name_and_title():
    results = {
        "Alpha": [VerifiedContact(name="Jane Chen", title="CCO")],
        "Beta": [VerifiedContact(name="JANE CHEN", title="cco")],
        "Gamma": [VerifiedContact(name="Jane Chen", title="MLRO")],
    }
    flagged, groups = ContactDeduplicator().apply(results)

    assert flagged["Beta"][0].duplicate_of == "Alpha"
    assert flagged["Gamma"][0].low_confidence is False
    assert len(groups) == 1


def test_contact_dict_round_trip():
    contact = VerifiedContact(
        name="Jane Chen", title="CCO", employer="ABC",
        linkedin_url="https://www.linkedin.com/in/janechen",
        source=ContactSource.BROAD_SEARCH, priority=1,
        low_confidence=True, duplicate_of="Alpha",
    )
    data = contact.to_dict()
    assert data["source"] == "broad-search"
    assert VerifiedContact.from_dict(data) == contact


# =============================================================================
# Confidence scoring
# =============================================================================

KNOWN = {"Major Payment Institution", "Capital Markets Services Licensee"}


def _entity(**kwargs):
    kwargs.setdefault("name", "ABC PTE LTD")
    return RegistryEntity(**kwargs)


def test_score_all_signals_is_clamped_to_one():
    scorer = ConfidenceScorer(KNOWN, threshold=0.7)
    entity = _entity(website="https://abc.sg", license_types={"Major Payment Institution"})
    contact = _contact(title="Chief Compliance Officer", email="jane@abc.sg")

    assert scorer.score(entity, contact) == 1.0


def test_score_without_email():
    scorer = ConfidenceScorer(KNOWN, threshold=0.7)
    entity = _entity(website="https://abc.sg", license_types={"Major Payment Institution"})
    score = scorer.score(entity, _contact(title="Head of Compliance"))

    assert score == pytest.approx(0.75)
    assert scorer.requires_review(score) is False


def test_score_no_signals_requires_review():
    scorer = ConfidenceScorer(KNOWN, threshold=0.7)
    entity = _entity(license_types={"Money-changing Licensee"})
    score = scorer.score(entity, _contact(title="Software Engineer"))

    assert score == 0.0
    assert scorer.requires_review(score) is True


def test_score_without_contact():
    scorer = ConfidenceScorer(KNOWN, threshold=0.7)
    entity = _entity(website="https://abc.sg", license_types={"Capital Markets Services Licensee"})
    assert scorer.score(entity, None) == pytest.approx(0.5)


def test_score_weights_and_threshold_are_configurable():
    scorer = ConfidenceScorer(
        KNOWN,
        weights=ScoringWeights(known_license=0.6, strong_identifier=0.0,
                               compliance_title=0.0, company_info=0.0),
        threshold=0.5,
    )
    entity = _entity(license_types={"Major Payment Institution"})
    score = scorer.score(entity, _contact(title="CCO"))

    assert score == pytest.approx(0.6)
    assert scorer.requires_review(score) is False
