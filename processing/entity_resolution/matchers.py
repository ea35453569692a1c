"""
Matching strategies for search results.

A search result is only trusted as evidence about a company after three
checks: the result must mention the company (not just share a word with the
person's own name), the person's name and title must be readable from it, and
any employer the snippet claims must agree with the target company.
"""

import re
from dataclasses import dataclass
from typing import Optional

from processing.entity_resolution.normalize import (
    MIN_KEYWORD_LENGTH,
    normalize_company_name,
    significant_keywords,
)


@dataclass
class SearchResult:
    """One organic result returned by the search capability."""
    title: str
    url: str
    snippet: str = ""


@dataclass
class ProfileMatch:
    """Person name and job title read from a profile search result."""
    name: str
    title: str


# " | LinkedIn", " - LinkedIn" and similar source-site suffixes
SITE_SUFFIX_RE = re.compile(
    r"\s*[|\-–—·]\s*(?:LinkedIn|Facebook|Twitter|X|Crunchbase|ZoomInfo|RocketReach)\s*$",
    re.IGNORECASE,
)

# Hyphens only separate when surrounded by spaces, so "Mary-Jane" survives
SEPARATOR_RE = re.compile(r"\s+[-–—]\s+|\s*[|·•]\s*")

MAX_PERSON_NAME_LENGTH = 60
UNKNOWN_TITLE = "Unknown Title"

SNIPPET_TITLE_PATTERNS = [
    re.compile(
        r"(?:^|\.\s+)((?=[A-Z])[^.]*?(?:compliance|CCO|MLRO|AML|officer|director|head|chief|VP|manager)[^.]*?)(?:\.|$)",
        re.IGNORECASE,
    ),
    re.compile(r"(?:title|position|role)[\s:]+([^.]+)", re.IGNORECASE),
]

_EMPLOYER_SUFFIX_RE = re.compile(r"\s+(?:at|@)\s+.*$")


def extract_person_name(title: str) -> Optional[str]:
    """
    Person name from a result title: the text before the first separator.

    A title with neither a separator nor a source-site suffix carries no
    recognizable person name.
    """
    if not title:
        return None

    has_site_suffix = bool(SITE_SUFFIX_RE.search(title))
    clean = SITE_SUFFIX_RE.sub("", title).strip()
    parts = [p.strip() for p in SEPARATOR_RE.split(clean) if p.strip()]

    if not parts:
        return None
    if len(parts) == 1 and not has_site_suffix:
        return None

    name = parts[0]
    if len(name) > MAX_PERSON_NAME_LENGTH:
        return None
    return name


def remove_person_words(text: str, person_name: Optional[str]) -> str:
    """Blank out every word (>= 3 chars) of the person's name, whole-word."""
    if not person_name:
        return text
    for word in re.findall(r"[^\W_]+", person_name):
        if len(word) >= MIN_KEYWORD_LENGTH:
            text = re.sub(rf"\b{re.escape(word)}\b", " ", text, flags=re.IGNORECASE)
    return text


def mentions_entity(result_title: str, result_snippet: str, company_name: str) -> bool:
    """
    Decide whether a search result is about the target company.

    The words of the person's own name are removed first, so "Ariana Lobo"
    is not evidence for "ARIANA INVESTMENT PTE. LTD.". The longest
    significant keyword of the company must then appear in what is left; a
    company made only of generic words needs its full normalized name.
    """
    person_name = extract_person_name(result_title or "")
    text = f"{result_title or ''} {result_snippet or ''}"
    return text_mentions_company(remove_person_words(text, person_name), company_name)


def text_mentions_company(text: str, company_name: str) -> bool:
    """Longest significant keyword (or full normalized name) as a substring."""
    text = (text or "").lower()
    keywords = significant_keywords(company_name)
    if not keywords:
        normalized = normalize_company_name(company_name).lower()
        return bool(normalized) and normalized in text

    return keywords[0] in text


def extract_title_from_snippet(snippet: str) -> Optional[str]:
    """Job title from a result snippet, without any trailing "at <Employer>"."""
    if not snippet:
        return None

    for pattern in SNIPPET_TITLE_PATTERNS:
        match = pattern.search(snippet)
        if match:
            title = _EMPLOYER_SUFFIX_RE.sub("", match.group(1)).strip()
            if title:
                return title
    return None


def _looks_like_company(text: str, company_name: str) -> bool:
    prefix = normalize_company_name(company_name).lower()[:10]
    return bool(prefix) and prefix in text.lower()


def parse_profile_result(title: str, snippet: str, company_name: str) -> Optional[ProfileMatch]:
    """
    Parse a profile search result into name and job title.

    Common formats:
        "Jane Chen - CCO - ABC Pte Ltd | LinkedIn"
        "Jane Chen – Chief Compliance Officer – ABC | LinkedIn"
        "Jane Chen | LinkedIn" (title in snippet)
    """
    if not title:
        return None

    clean = SITE_SUFFIX_RE.sub("", title).strip()
    parts = [p.strip() for p in SEPARATOR_RE.split(clean) if p.strip()]
    if not parts:
        return None

    name = parts[0]
    if len(name) > MAX_PERSON_NAME_LENGTH:
        return None

    job_title = parts[1] if len(parts) >= 2 else ""

    # Second segment is sometimes the company rather than the role
    if not job_title or _looks_like_company(job_title, company_name):
        snippet_title = extract_title_from_snippet(snippet)
        if snippet_title:
            job_title = snippet_title

    return ProfileMatch(name=name, title=job_title or UNKNOWN_TITLE)


# ---------------------------------------------------------------------------
# Employer extraction
# ---------------------------------------------------------------------------

MAX_EMPLOYER_LENGTH = 80


class EmployerExtractor:
    """One way of reading a claimed employer out of a snippet."""

    name = "base"

    def extract(self, snippet: str) -> Optional[str]:
        raise NotImplementedError

    @staticmethod
    def _clean(value: str) -> Optional[str]:
        value = re.sub(r"\s+", " ", value).strip(" -–—")
        if not value or len(value) > MAX_EMPLOYER_LENGTH:
            return None
        return value


class AtEmployerExtractor(EmployerExtractor):
    """"<title> at <Employer>" or "<title> @ <Employer>", up to punctuation."""

    name = "at"
    PATTERN = re.compile(r"(?:\bat\b|@)\s*([A-Z0-9][^.,;:|·•()\n]*)")

    def extract(self, snippet: str) -> Optional[str]:
        match = self.PATTERN.search(snippet or "")
        return self._clean(match.group(1)) if match else None


class LeadingSegmentExtractor(EmployerExtractor):
    """"<Employer> · <title>" or "<Employer> | <title>": the leading segment."""

    name = "leading_segment"
    PATTERN = re.compile(r"^\s*(?:Experience|Company)?\s*:?\s*([A-Z][^·|\n]*?)\s*[·|]\s*\S")

    def extract(self, snippet: str) -> Optional[str]:
        match = self.PATTERN.search(snippet or "")
        return self._clean(match.group(1)) if match else None


DEFAULT_EXTRACTORS: tuple[EmployerExtractor, ...] = (
    AtEmployerExtractor(),
    LeadingSegmentExtractor(),
)


def extract_employer(
    snippet: str,
    extractors: tuple[EmployerExtractor, ...] = DEFAULT_EXTRACTORS,
) -> Optional[str]:
    """Claimed employer from a snippet; the first extractor that matches wins."""
    if not snippet:
        return None
    for extractor in extractors:
        employer = extractor.extract(snippet)
        if employer:
            return employer
    return None


def verify_employer(contact, target_company: str) -> bool:
    """
    Check a contact's claimed employer against the target company.

    A contact with no employer evidence passes: absence of evidence is not a
    mismatch. Otherwise the employer text must contain a significant keyword
    of the target, or its full normalized name when it has none.
    """
    employer = contact.employer
    if not employer:
        return True

    employer_text = employer.lower()
    keywords = significant_keywords(target_company)
    if not keywords:
        normalized = normalize_company_name(target_company).lower()
        return bool(normalized) and normalized in employer_text

    return any(keyword in employer_text for keyword in keywords)
