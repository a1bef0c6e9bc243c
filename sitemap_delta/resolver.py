"""
1.0 Sitemap Resolver Module
Turns a site root into the flat, deduplicated list of URLs its sitemap lists.

Key features:
- robots.txt `Sitemap:` declarations tried first, in listed order
- Conventional sitemap paths as fallback, first success wins
- Recursive sitemap index traversal with a depth guard and cycle check
- Child sitemaps of an index fetched concurrently; a failing child contributes nothing
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sitemap_delta.errors import FetchError, NotFound, ParseError
from sitemap_delta.robots import fetch_declared_sitemaps
from sitemap_delta.sitemap_fetcher import SitemapFetcher
from sitemap_delta.sitemap_parser import SitemapParser
from sitemap_delta.url_utils import is_absolute_http_url, normalize_site_root, unique_absolute_urls

logger = logging.getLogger(__name__)

# 1.1 Fallback locations, in order of preference
CONVENTIONAL_SITEMAP_PATHS = [
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/wp-sitemap.xml",  # WordPress
    "/sitemap/sitemap.xml",
    "/sitemaps/sitemap.xml",
    "/sitemap/index.xml",
    "/sitemap.php",
    "/sitemap.txt",
    "/sitemap/",
]

DEFAULT_MAX_INDEX_DEPTH = 3
DEFAULT_MAX_SITEMAP_WORKERS = 4


class SitemapResolver:
    """
    2.0 SitemapResolver Class
    Discovers, fetches and flattens a site's sitemap.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        fetcher: Optional[SitemapFetcher] = None,
        parser: Optional[SitemapParser] = None,
    ):
        """
        2.1 Initialize the resolver.

        Args:
            config: Configuration dictionary; reads max_index_depth and
                max_sitemap_workers, and is handed to the default fetcher
            fetcher: Optional fetcher (defaults to SitemapFetcher(config))
            parser: Optional parser (defaults to SitemapParser())
        """
        config = config or {}
        self.fetcher = fetcher or SitemapFetcher(config=config)
        self.parser = parser or SitemapParser()
        self.max_index_depth = max(0, int(config.get("max_index_depth", DEFAULT_MAX_INDEX_DEPTH)))
        self.max_workers = max(1, int(config.get("max_sitemap_workers", DEFAULT_MAX_SITEMAP_WORKERS)))

    # =========================================================================
    # 3.0 DISCOVERY
    # =========================================================================

    def resolve(self, site_root: str) -> List[str]:
        """
        3.1 Resolve a site root into its deduplicated list of sitemap URLs.

        Candidates are tried one after another; the first one that can be
        fetched and parsed wins, even if it lists nothing.

        Raises:
            InvalidInput: site_root is not an absolute http(s) URL
            NotFound: no candidate produced a sitemap
        """
        root = normalize_site_root(site_root)
        logger.info(f"Resolving sitemap for {root}")

        tried = set()
        for candidate in self._candidates(root):
            if candidate in tried:
                continue
            tried.add(candidate)

            try:
                urls = self.resolve_sitemap(candidate)
            except (FetchError, ParseError) as e:
                logger.info(f"Candidate {candidate} failed: {e}")
                continue

            unique_urls = unique_absolute_urls(urls)
            logger.info(f"Resolved {root} via {candidate}: {len(unique_urls)} URLs")
            return unique_urls

        logger.warning(f"No sitemap found for {root} after {len(tried)} candidates")
        raise NotFound(root, len(tried))

    def _candidates(self, root: str) -> Iterator[str]:
        """
        3.2 Yield candidate sitemap locations in priority order.

        robots.txt is only fetched when the first candidate is requested.
        """
        for sitemap_url in fetch_declared_sitemaps(self.fetcher, root):
            yield sitemap_url
        for path in CONVENTIONAL_SITEMAP_PATHS:
            yield f"{root}{path}"

    # =========================================================================
    # 4.0 FETCH + PARSE
    # =========================================================================

    def resolve_sitemap(self, sitemap_url: str, depth: int = 0, ancestors: Tuple[str, ...] = ()) -> List[str]:
        """
        4.1 Fetch and parse one sitemap, following sitemap indexes.

        Args:
            sitemap_url: Location of the sitemap document
            depth: Index nesting level of this document (0 for the top one)
            ancestors: Sitemap URLs on the path from the top document

        Returns:
            Raw page locations, possibly with duplicates

        Raises:
            FetchError, ParseError: for this document only; children never raise
        """
        body = self.fetcher.fetch(sitemap_url)
        parsed = self.parser.parse_sitemap(body, sitemap_url=sitemap_url)

        if not parsed.is_index:
            return parsed.locations

        if depth >= self.max_index_depth:
            logger.warning(
                f"Sitemap index {sitemap_url} is nested {depth} levels deep; "
                f"not following its {len(parsed.locations)} children (max_index_depth={self.max_index_depth})"
            )
            return []

        branch = ancestors + (sitemap_url,)
        children = []
        for child_url in parsed.locations:
            if not is_absolute_http_url(child_url):
                logger.debug(f"Skipping non-absolute child sitemap {child_url!r} in {sitemap_url}")
            elif child_url in branch:
                logger.warning(f"Sitemap index cycle: {child_url} already on this branch, skipping")
            elif child_url not in children:
                children.append(child_url)

        return self._gather_children(children, depth + 1, branch)

    def _gather_children(self, children: List[str], depth: int, branch: Tuple[str, ...]) -> List[str]:
        """
        4.2 Fetch child sitemaps concurrently and merge what they return.

        Waits for every child; failures are logged and contribute nothing.
        Only the top index opens a pool. Nested indexes run inside the worker
        that reached them, so one resolve uses at most max_workers threads.
        """
        if not children:
            return []

        collected: List[str] = []
        if depth > 1 or self.max_workers == 1 or len(children) == 1:
            results = [(child_url, self._resolve_child(child_url, depth, branch)) for child_url in children]
        else:
            workers = min(self.max_workers, len(children))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    (child_url, executor.submit(self._resolve_child, child_url, depth, branch))
                    for child_url in children
                ]
                results = [(child_url, future.result()) for child_url, future in futures]

        for child_url, urls in results:
            logger.debug(f"Child sitemap {child_url} contributed {len(urls)} URLs")
            collected.extend(urls)

        logger.info(f"Merged {len(collected)} URLs from {len(children)} child sitemaps")
        return collected

    def _resolve_child(self, child_url: str, depth: int, branch: Tuple[str, ...]) -> List[str]:
        try:
            return self.resolve_sitemap(child_url, depth=depth, ancestors=branch)
        except (FetchError, ParseError) as e:
            logger.warning(f"Child sitemap {child_url} skipped: {e}")
            return []
