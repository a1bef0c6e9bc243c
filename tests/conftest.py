"""
Shared fixtures - no network.

HTTP goes through FakeSession, injected into SitemapFetcher; backoff sleeps
are recorded instead of slept.
"""

import threading

import pytest

from sitemap_delta import sitemap_fetcher
from sitemap_delta.resolver import SitemapResolver
from sitemap_delta.sitemap_fetcher import SitemapFetcher
from sitemap_delta.storage import SnapshotStore


class FakeResponse:
    def __init__(self, url, status_code=200, text="", content=None):
        self.url = url
        self.status_code = status_code
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")


class FakeSession:
    """
    Route table keyed by URL. A route is one of:
    - str: 200 with that body
    - bytes: 200 with that raw content
    - int: that status code, empty body
    - (status, body) tuple
    - an exception instance, raised on get()
    - a list of the above, consumed one per request (the last one repeats)
    Unknown URLs get `default` (404 unless given).
    """

    def __init__(self, routes=None, default=404):
        self.routes = dict(routes or {})
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, timeout=None, headers=None):
        with self._lock:
            self.calls.append({"url": url, "timeout": timeout, "headers": headers})
            route = self.routes.get(url, self.default)
            if isinstance(route, list):
                route = route.pop(0) if len(route) > 1 else route[0]

        if isinstance(route, BaseException):
            raise route
        if isinstance(route, int):
            return FakeResponse(url, route)
        if isinstance(route, tuple):
            status, body = route
            return FakeResponse(url, status, body)
        if isinstance(route, bytes):
            return FakeResponse(url, 200, "", content=route)
        return FakeResponse(url, 200, route)

    @property
    def requested(self):
        return [call["url"] for call in self.calls]


def urlset(*locs):
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemapindex(*locs):
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


@pytest.fixture
def sleeps(monkeypatch):
    """Backoff delays requested by the fetcher, in order."""
    recorded = []
    monkeypatch.setattr(sitemap_fetcher.time, "sleep", lambda seconds: recorded.append(seconds))
    return recorded


@pytest.fixture
def make_resolver(sleeps):
    """Build a resolver over a FakeSession: make_resolver(routes, **config) -> (resolver, session)."""
    def _make(routes=None, default=404, **config):
        session = FakeSession(routes, default=default)
        fetcher = SitemapFetcher(config=config, session=session)
        return SitemapResolver(config=config, fetcher=fetcher), session
    return _make


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(data_dir=str(tmp_path / "output"))
