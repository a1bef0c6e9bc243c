"""
URL helpers shared by the resolver, the store and the command line.
"""

from typing import Iterable, List
from urllib.parse import urlparse, urlunparse

from sitemap_delta.errors import InvalidInput

ALLOWED_SCHEMES = ("http", "https")


def is_absolute_http_url(value: str) -> bool:
    """True for a non-empty http(s) URL with a host."""
    if not value or not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.netloc)


def normalize_site_root(site_root: str) -> str:
    """
    Normalize a user supplied site root.

    Lowercases scheme and host, drops query and fragment and strips the
    trailing slash. A path prefix is kept so sites mounted below "/" still
    resolve their robots.txt and sitemaps relative to it.

    Raises:
        InvalidInput: if the value is not an absolute http(s) URL
    """
    if not isinstance(site_root, str) or not site_root.strip():
        raise InvalidInput(f"Site root must be a non-empty string, got {site_root!r}")

    candidate = site_root.strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as e:
        raise InvalidInput(f"Site root is not a valid URL: {candidate!r} ({e})") from e

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidInput(f"Site root must use http or https: {candidate!r}")
    if not parsed.netloc or not parsed.hostname:
        raise InvalidInput(f"Site root has no host: {candidate!r}")

    path = parsed.path.rstrip("/")
    return urlunparse((scheme, parsed.netloc.lower(), path, "", "", ""))


def get_host(url: str) -> str:
    """Hostname of a URL, or an empty string when it has none."""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def unique_absolute_urls(urls: Iterable[str]) -> List[str]:
    """
    Strip, drop empty and non-absolute entries, and remove exact duplicates.

    First-seen order is kept so output is stable between runs.
    """
    seen = set()
    result = []
    for url in urls:
        if not isinstance(url, str):
            continue
        url = url.strip()
        if not is_absolute_http_url(url) or url in seen:
            continue
        seen.add(url)
        result.append(url)
    return result
