"""
Company website scraper.

Reads the landing page description and, when an About/Team page is linked,
the names and titles listed on it.
"""

import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.logging import logger
from config.settings import settings
from processing.errors import FetchError

ABOUT_LINK_RE = re.compile(r"\b(team|about|leadership|people|management)\b", re.IGNORECASE)

TEAM_CARD_SELECTOR = (
    '[class*="team"] [class*="card"], [class*="member"], '
    '[class*="person"], [class*="staff"]'
)
NAME_SELECTOR = 'h2, h3, h4, [class*="name"], strong'
TITLE_SELECTOR = 'p, [class*="title"], [class*="role"], [class*="position"], span'

MAX_DESCRIPTION_LENGTH = 300
MAX_TEAM_MEMBERS = 20


@dataclass
class TeamMember:
    name: str
    title: str = ""


@dataclass
class SiteInfo:
    description: str = ""
    team_members: list[TeamMember] = field(default_factory=list)


def _text(elem) -> str:
    return re.sub(r"\s+", " ", elem.get_text(" ")).strip() if elem else ""


def parse_description(html: str) -> str:
    """Meta description, else the first paragraph (truncated)."""
    soup = BeautifulSoup(html or "", "html.parser")
    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        return meta["content"].strip()

    paragraph = soup.select_one("main p, article p, .content p, p")
    return _text(paragraph)[:MAX_DESCRIPTION_LENGTH]


def find_about_link(html: str, base_url: str) -> Optional[str]:
    """First link whose text mentions team/about/leadership/people/management."""
    soup = BeautifulSoup(html or "", "html.parser")
    for link in soup.find_all("a", href=True):
        if ABOUT_LINK_RE.search(link.get_text(" ")):
            return urljoin(base_url, link["href"])
    return None


def parse_team_members(html: str) -> list[TeamMember]:
    """Team cards: a heading-like name element plus the first title-like element."""
    soup = BeautifulSoup(html or "", "html.parser")
    members = []
    for card in soup.select(TEAM_CARD_SELECTOR):
        name_elem = card.select_one(NAME_SELECTOR)
        if not name_elem:
            continue
        name = _text(name_elem)
        if not name:
            continue

        title = ""
        for candidate in card.select(TITLE_SELECTOR):
            if candidate is not name_elem and name_elem not in candidate.parents:
                title = _text(candidate)
                if title and title != name:
                    break
                title = ""

        members.append(TeamMember(name=name, title=title))
        if len(members) >= MAX_TEAM_MEMBERS:
            break
    return members


class CompanySiteScraper:
    """
    Fetches a company website and its About/Team page.

    Usage:
        with CompanySiteScraper() as site:
            info = site.scrape("https://example.sg")
    """

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": settings.USER_AGENT,
            "Accept": "text/html",
        })
        retry_strategy = Retry(
            total=2,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def _get(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FetchError(url, str(e)) from e
        return response.text

    def scrape(self, website: str) -> SiteInfo:
        """
        Description and team members of a company website.

        Raises:
            FetchError: if the landing page cannot be fetched. A failing
                About/Team page only loses the team list.
        """
        if not website:
            return SiteInfo()

        base_url = website if website.startswith("http") else f"https://{website}"
        landing = self._get(base_url)
        info = SiteInfo(description=parse_description(landing))

        about_url = find_about_link(landing, base_url)
        if about_url:
            try:
                info.team_members = parse_team_members(self._get(about_url))
            except FetchError as e:
                logger.warning(f"Team page unavailable: {e}")

        logger.debug(f"{base_url}: {len(info.team_members)} team members")
        return info

    def close(self):
        self.session.close()

    def __enter__(self) -> "CompanySiteScraper":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
