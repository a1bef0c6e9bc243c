"""
Robots.txt reader - find the sitemaps a site declares

Only the `Sitemap:` directive matters here; user-agent groups and
allow/disallow rules are ignored because sitemap discovery is not a crawl.

Usage:
    from sitemap_delta.robots import fetch_declared_sitemaps

    sitemap_urls = fetch_declared_sitemaps(fetcher, "https://example.com")
"""

import logging
import re
from typing import List
from urllib.parse import urljoin

from sitemap_delta.errors import FetchError
from sitemap_delta.sitemap_fetcher import SitemapFetcher
from sitemap_delta.url_utils import is_absolute_http_url

logger = logging.getLogger(__name__)

SITEMAP_DIRECTIVE = re.compile(r"^\s*sitemap\s*:\s*(\S+)", re.IGNORECASE)


def robots_url(site_root: str) -> str:
    return f"{site_root.rstrip('/')}/robots.txt"


def parse_sitemap_directives(robots_content: str, base_url: str = "") -> List[str]:
    """
    Collect every `Sitemap: <url>` line, in the order listed.

    Relative values are resolved against base_url; anything that still is
    not an absolute http(s) URL is dropped. Repeated declarations are kept
    once.
    """
    sitemap_urls = []

    for line in (robots_content or "").splitlines():
        match = SITEMAP_DIRECTIVE.match(line)
        if not match:
            continue

        value = match.group(1).strip()
        if base_url:
            value = urljoin(base_url.rstrip("/") + "/", value)

        if not is_absolute_http_url(value):
            logger.debug(f"Ignoring non-absolute sitemap directive: {value!r}")
            continue
        if value not in sitemap_urls:
            sitemap_urls.append(value)

    return sitemap_urls


def fetch_declared_sitemaps(fetcher: SitemapFetcher, site_root: str) -> List[str]:
    """
    Fetch robots.txt for a site root and return its declared sitemaps.

    A missing or unreachable robots.txt is normal and yields an empty list.
    """
    url = robots_url(site_root)
    try:
        content = fetcher.fetch(url)
    except FetchError as e:
        logger.info(f"No robots.txt for {site_root}: {e.last_error}")
        return []

    sitemap_urls = parse_sitemap_directives(content, site_root)
    logger.info(f"robots.txt for {site_root} declares {len(sitemap_urls)} sitemap(s)")
    return sitemap_urls
