"""
Error taxonomy for Registry Scout.

FetchError and StorageError abort the current step; ParseError degrades to an
empty result for the affected row or page. Missing employer evidence is not an
error at all (see entity_resolution.matchers.verify_employer).
"""


class RegistryScoutError(Exception):
    """Base class for all Registry Scout errors."""


class FetchError(RegistryScoutError):
    """Network or HTTP failure reaching the registry, a search engine or a website."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Fetch failed for {url}: {message}")


class ParseError(RegistryScoutError):
    """Source content did not have the expected structure."""


class StorageError(RegistryScoutError):
    """A snapshot or enrichment result could not be written or read back."""


class EmptyRegistryError(RegistryScoutError):
    """A scrape returned zero entities, most likely a source format break."""
