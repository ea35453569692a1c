#!/usr/bin/env python3
"""
MAS Financial Institutions Directory Scraper

Pulls the full institution list for each watched license category from the
FID print view (one page per category, no pagination) and turns it into raw
registry rows for processing.registry.RegistryNormalizer.

Usage:
    python -m scrapers.mas_fid
    python -m scrapers.mas_fid --category "Major Payment Institution" --sector Payments
"""

import argparse
import json
import re
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, Tag
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging import log_block, logger
from config.settings import settings
from processing.errors import FetchError, ParseError


DETAIL_LINK_SELECTOR = 'a[href*="/fid/institution/detail/"]'

FID_RE = re.compile(r"/detail/(\d+)-")
ADDRESS_RE = re.compile(r"(\d+[\s\S]*?SINGAPORE\s*\d{6})", re.IGNORECASE)
PHONE_RE = re.compile(r"(?:\+65\s?)?(\d{8})")
ACTIVITY_RE = re.compile(r"(?:Regulated\s+)?Activit(?:y|ies)\s*:\s*([^\n]+)", re.IGNORECASE)


@dataclass
class ScraperStats:
    """Statistics from a scraping run."""
    categories_requested: int = 0
    categories_failed: int = 0
    rows_parsed: int = 0
    rows_skipped: int = 0
    http_requests: int = 0
    failures: list[str] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def log_summary(self):
        """Log summary statistics."""
        duration = (self.end_time - self.start_time).total_seconds() if self.end_time and self.start_time else 0
        log_block(
            "FID SCRAPE COMPLETE",
            [
                f"Duration: {duration:.1f} seconds",
                f"HTTP requests: {self.http_requests}",
                f"Categories: {self.categories_requested} requested, {self.categories_failed} failed",
                f"Rows parsed: {self.rows_parsed}",
                f"Rows skipped: {self.rows_skipped}",
            ],
            warnings=self.failures,
        )


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _parse_row(link: Tag, license_type: str, sector: str, base_url: str) -> dict:
    """
    Build one raw registry row from an institution detail link.

    Raises:
        ParseError: if the surrounding markup does not look like an entry
    """
    name = _clean(link.get_text(" "))
    href = link.get("href") or ""
    if not name or not href:
        raise ParseError(f"Detail link without name or href: {link}")

    fid_match = FID_RE.search(href)
    fid = fid_match.group(1) if fid_match else ""

    container = link.find_parent(["div", "tr", "li", "section"])
    if container is None:
        container = link.parent

    # Table layout: the row must line up with the header
    if container.name == "tr":
        table = container.find_parent("table")
        header = table.find("tr") if table else None
        header_cells = header.find_all("th") if header else []
        if header_cells and len(container.find_all("td")) != len(header_cells):
            raise ParseError(
                f"Row for '{name}' has {len(container.find_all('td'))} cells, "
                f"header has {len(header_cells)}"
            )

    text = container.get_text("\n")

    address_match = ADDRESS_RE.search(text)
    address = _clean(address_match.group(1)) if address_match else ""

    website = ""
    for other in container.find_all("a", href=re.compile(r"^https?://")):
        if other is not link and "/fid/institution/detail/" not in other["href"]:
            website = other["href"]
            break

    phone_match = PHONE_RE.search(text)
    phone = phone_match.group(0) if phone_match else ""

    activity_match = ACTIVITY_RE.search(text)
    activity = _clean(activity_match.group(1)) if activity_match else ""

    return {
        "name": name,
        "fid": fid,
        "detail_url": href if href.startswith("http") else urljoin(base_url, href),
        "license_type": license_type,
        "activity": activity,
        "sector": sector,
        "address": address,
        "website": website,
        "phone": phone,
    }


def parse_institution_list(
    html: str,
    license_type: str,
    sector: str = "",
    base_url: Optional[str] = None,
    stats: Optional[ScraperStats] = None,
) -> list[dict]:
    """
    Parse an FID listing page into raw registry rows.

    Every link to ``/fid/institution/detail/<id>-<slug>`` is one institution;
    the nearest enclosing block supplies address, website, phone and activity.
    Rows that cannot be parsed are logged and skipped.
    """
    base_url = base_url or settings.MAS_FID_BASE
    if not html:
        logger.warning(f"Empty listing page for {license_type}")
        return []

    soup = BeautifulSoup(html, "html.parser")
    rows = []
    for link in soup.select(DETAIL_LINK_SELECTOR):
        try:
            rows.append(_parse_row(link, license_type, sector, base_url))
        except ParseError as e:
            logger.warning(f"Skipping registry row: {e}")
            if stats:
                stats.rows_skipped += 1

    if stats:
        stats.rows_parsed += len(rows)
    logger.info(f"{license_type}: found {len(rows)} institutions")
    return rows


class MASFIDScraper:
    """
    Scraper for the MAS Financial Institutions Directory print view.
    """

    PRINT_ENDPOINT = "/institution/print"

    def __init__(
        self,
        base_url: Optional[str] = None,
        categories: Optional[list[dict[str, str]]] = None,
        category_delay: Optional[float] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialize the scraper.

        Args:
            base_url: FID root URL
            categories: List of {"sector", "category"} dicts to scrape
            category_delay: Pause between category requests, in seconds
            timeout: Per-request timeout, in seconds
        """
        self.base_url = (base_url or settings.MAS_FID_BASE).rstrip("/")
        self.categories = categories if categories is not None else settings.WATCHED_CATEGORIES
        self.category_delay = settings.CATEGORY_DELAY_SECONDS if category_delay is None else category_delay
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.stats = ScraperStats()

        # Setup session with retry logic
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": settings.USER_AGENT,
            "Accept": "text/html",
        })
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def scrape_category(self, sector: str, category: str) -> list[dict]:
        """
        Fetch and parse one license category.

        Raises:
            FetchError: on network failure or a non-2xx response
        """
        url = f"{self.base_url}{self.PRINT_ENDPOINT}"
        logger.info(f"Fetching category: {category}")
        self.stats.http_requests += 1

        try:
            response = self.session.get(
                url,
                params={"sector": sector, "category": category},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise FetchError(url, str(e)) from e

        return parse_institution_list(
            response.text,
            license_type=category,
            sector=sector,
            base_url=self.base_url + "/",
            stats=self.stats,
        )

    def scrape_all(self) -> list[dict]:
        """
        Scrape every watched category.

        A failed category is logged and skipped; the caller decides what an
        empty overall result means.
        """
        self.stats = ScraperStats()
        self.stats.start_time = datetime.now()
        rows = []

        for i, watched in enumerate(self.categories):
            if i > 0 and self.category_delay:
                time.sleep(self.category_delay)

            self.stats.categories_requested += 1
            try:
                rows.extend(self.scrape_category(watched["sector"], watched["category"]))
            except FetchError as e:
                logger.error(f"Category {watched['category']} failed: {e}")
                self.stats.categories_failed += 1
                self.stats.failures.append(str(e))

        self.stats.end_time = datetime.now()
        self.stats.log_summary()
        return rows

    def close(self):
        self.session.close()


def main():
    """CLI entry point: print raw rows as JSON."""
    parser = argparse.ArgumentParser(
        description="Scrape the MAS Financial Institutions Directory"
    )
    parser.add_argument("--sector", type=str, help="Sector of a single category to scrape")
    parser.add_argument("--category", type=str, help="Single category to scrape (default: all watched)")
    args = parser.parse_args()

    categories = None
    if args.category:
        categories = [{"sector": args.sector or "", "category": args.category}]

    scraper = MASFIDScraper(categories=categories)
    try:
        rows = scraper.scrape_all()
    finally:
        scraper.close()

    print(json.dumps(rows, indent=2, ensure_ascii=False))
    if not rows:
        sys.exit(1)


if __name__ == "__main__":
    main()
