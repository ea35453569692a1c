"""
Company name normalization for search queries and comparison.
"""

import re

# Trailing legal-entity suffixes; only anchored matches at a word boundary count
LEGAL_SUFFIX_RE = re.compile(
    r"\s*\b(?:"
    r"PTE\.?\s*LTD\.?"
    r"|PRIVATE\s+LIMITED"
    r"|PTY\.?\s*LTD\.?"
    r"|CO\.?,?\s*LTD\.?"
    r"|LIMITED"
    r"|LTD\.?"
    r"|INC\.?"
    r"|INCORPORATED"
    r"|CORP\.?"
    r"|CORPORATION"
    r"|LLC\.?"
    r"|L\.?L\.?C\.?"
    r"|LLP\.?"
    r"|L\.?P\.?"
    r"|S\.?A\.?"
    r"|GMBH"
    r"|AG"
    r"|PLC"
    r")\s*[.,]?\s*$",
    re.IGNORECASE,
)

# Parenthetical jurisdiction markers, e.g. "(SINGAPORE)", "(S)", "(ASIA PACIFIC)"
JURISDICTION_RE = re.compile(
    r"\s*\(\s*(?:SINGAPORE|S'?PORE|SG|S|ASIA(?:\s+PACIFIC)?|APAC|HONG\s+KONG|HK|"
    r"MALAYSIA|UK|US|USA|EUROPE|INTERNATIONAL|CAYMAN(?:\s+ISLANDS)?|BVI|"
    r"BRITISH\s+VIRGIN\s+ISLANDS|BERMUDA|JAPAN|CHINA|PRC|LUXEMBOURG|SWITZERLAND|"
    r"AUSTRALIA|INDIA|KOREA|TAIWAN|THAILAND|INDONESIA|DIFC|UAE)\s*\)\s*",
    re.IGNORECASE,
)

# Generic corporate words that never identify a company on their own
STOP_WORDS = frozenset({
    "pte", "ltd", "limited", "private", "inc", "corp", "corporation", "llc", "co",
    "company", "the", "and", "for",
    "group", "holdings", "holding", "capital", "management", "financial",
    "finance", "digital", "asset", "assets", "services", "service", "technology",
    "technologies", "tech", "global", "international", "asia", "pacific",
    "singapore", "investment", "investments", "partners", "advisors", "advisory",
    "securities", "solutions", "fund", "funds", "wealth", "payments", "payment",
    "markets", "trading", "exchange", "bank", "branch",
})

MIN_KEYWORD_LENGTH = 3

_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9&'.-]*")


def normalize_company_name(name: str) -> str:
    """
    Strip legal suffixes and jurisdiction markers from a company name.

    "HASHKEY DIGITAL ASSET GROUP PTE. LTD." -> "HASHKEY DIGITAL ASSET GROUP"
    "ABC (SINGAPORE) PTE LTD" -> "ABC"

    Applied until nothing changes, so normalizing twice is a no-op. A suffix
    that would consume the whole name is left in place.
    """
    if not name:
        return ""

    normalized = re.sub(r"\s+", " ", name).strip()
    while True:
        previous = normalized
        normalized = JURISDICTION_RE.sub(" ", normalized).strip()
        stripped = LEGAL_SUFFIX_RE.sub("", normalized).strip()
        if stripped:
            normalized = stripped
        normalized = re.sub(r"\s+", " ", normalized).rstrip(" ,")
        if normalized == previous:
            return normalized


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens, with edge punctuation trimmed."""
    return [t.strip(".-'") for t in _TOKEN_RE.findall(text.lower())]


def significant_keywords(company_name: str) -> list[str]:
    """
    Distinctive tokens of a company name, longest first.

    Tokens shorter than three characters and generic corporate words are
    dropped; ties keep the order of appearance.
    """
    seen = []
    for token in tokenize(normalize_company_name(company_name)):
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOP_WORDS and token not in seen:
            seen.append(token)
    return sorted(seen, key=len, reverse=True)
