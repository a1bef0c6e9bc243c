"""
Error kinds raised by the resolver, fetcher and snapshot store.
"""

from typing import Optional


class SitemapDeltaError(Exception):
    """Base class for every error raised by this package."""


class InvalidInput(SitemapDeltaError):
    """The supplied site root is not a well-formed absolute http(s) URL."""


class FetchError(SitemapDeltaError):
    """A single request exhausted its retry budget."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {last_error}")


class ParseError(SitemapDeltaError):
    """A sitemap body looked like XML but could not be parsed at all."""


class NotFound(SitemapDeltaError):
    """No discovery candidate produced a usable sitemap."""

    def __init__(self, site_root: str, candidates_tried: int = 0):
        self.site_root = site_root
        self.candidates_tried = candidates_tried
        super().__init__(f"Sitemap not found for {site_root} ({candidates_tried} candidates tried)")


class SnapshotNotFound(SitemapDeltaError):
    """No stored snapshot has the requested id."""
