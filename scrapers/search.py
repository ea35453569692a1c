"""
Web search client (DuckDuckGo HTML endpoint).

SearchSession is the only way the enrichment run reaches the search engine.
It owns the HTTP session and the minimum delay between calls, so every
caller inside one ``with`` block shares a single rate limit:

    with SearchSession() as search:
        results = search.search('"Acme" site:linkedin.com/in')
"""

import time
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.logging import logger
from config.settings import settings
from processing.entity_resolution.matchers import SearchResult
from processing.errors import FetchError

SEARCH_URL = "https://html.duckduckgo.com/html/"

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def _resolve_redirect(href: str) -> str:
    """Unwrap DuckDuckGo's "/l/?uddg=<target>" redirect links."""
    if href.startswith("//"):
        href = "https:" + href
    parsed = urlparse(href)
    if parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg")
        if target:
            return target[0]
    return href


def parse_search_results(html: str, max_results: int = 10) -> list[SearchResult]:
    """Organic results from a DuckDuckGo HTML results page, in page order."""
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    results = []
    seen_urls = set()

    for container in soup.select("div.result"):
        if "result--ad" in (container.get("class") or []):
            continue

        link = container.find("a", class_="result__a")
        if not link or not link.get("href"):
            continue

        url = _resolve_redirect(link["href"])
        if not url.startswith("http") or url in seen_urls:
            continue
        seen_urls.add(url)

        snippet_elem = container.find(class_="result__snippet")
        results.append(SearchResult(
            title=link.get_text(" ", strip=True),
            url=url,
            snippet=snippet_elem.get_text(" ", strip=True) if snippet_elem else "",
        ))
        if len(results) >= max_results:
            break

    return results


class SearchSession:
    """
    Scoped, rate-limited handle on the search engine.

    Args:
        min_delay: Minimum seconds between the start of two searches
        timeout: Per-request timeout, in seconds
        clock / sleep: Injected for tests
    """

    def __init__(
        self,
        min_delay: Optional[float] = None,
        timeout: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_delay = settings.SEARCH_DELAY_SECONDS if min_delay is None else min_delay
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._clock = clock
        self._sleep = sleep
        self.last_request_time: Optional[float] = None
        self.request_count = 0
        self.session: Optional[requests.Session] = None

    def open(self) -> "SearchSession":
        if self.session is None:
            self.session = requests.Session()
            self.session.headers.update(BROWSER_HEADERS)
            retry_strategy = Retry(
                total=3,
                backoff_factor=1,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=None,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("https://", adapter)
            self.session.mount("http://", adapter)
        return self

    def close(self):
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self) -> "SearchSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _rate_limit(self):
        """Block until min_delay has passed since the previous search."""
        if self.last_request_time is not None:
            elapsed = self._clock() - self.last_request_time
            if elapsed < self.min_delay:
                wait = self.min_delay - elapsed
                logger.debug(f"Search rate limit: waiting {wait:.1f}s")
                self._sleep(wait)
        self.last_request_time = self._clock()

    def _post(self, query: str) -> str:
        if self.session is None:
            raise RuntimeError("SearchSession used outside of its 'with' block")

        try:
            response = self.session.post(
                SEARCH_URL,
                data={"q": query, "kl": "sg-en"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise FetchError(SEARCH_URL, str(e)) from e

        # 202 is DuckDuckGo's soft rate-limit page
        if response.status_code != 200:
            raise FetchError(SEARCH_URL, f"HTTP {response.status_code} for query '{query}'")
        return response.text

    def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        """
        Run one query.

        Raises:
            FetchError: on network failure or a non-200 response
        """
        self._rate_limit()
        self.request_count += 1
        logger.debug(f"Search: {query}")

        results = parse_search_results(self._post(query), max_results=max_results)
        logger.debug(f"  {len(results)} results")
        return results
