"""
1.0 Crawl Orchestration Module
Runs a crawl for one site root or for every tracked site root.

A crawl is resolve + insert_snapshot. A failed crawl leaves the stored
snapshots untouched; it is only logged and reported back.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sitemap_delta.config import get_target_site_roots
from sitemap_delta.differ import diff_new_urls
from sitemap_delta.errors import InvalidInput, NotFound
from sitemap_delta.resolver import SitemapResolver
from sitemap_delta.storage import Snapshot, SnapshotStore
from sitemap_delta.url_utils import normalize_site_root

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_NOT_FOUND = "not_found"
STATUS_INVALID = "invalid"
STATUS_ERROR = "error"


@dataclass
class CrawlResult:
    site_root: str
    status: str
    snapshot: Optional[Snapshot] = None
    new_urls: List[str] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS


def crawl_site(site_root: str, store: SnapshotStore, resolver: SitemapResolver) -> CrawlResult:
    """
    2.0 Crawl one site root and store the result as a new snapshot.

    The URLs new since the site's latest stored snapshot are reported in the
    result; nothing is reported as new on a site's first crawl.

    Raises:
        InvalidInput: site_root is not an absolute http(s) URL
        NotFound: no sitemap could be discovered; nothing is stored
    """
    root = normalize_site_root(site_root)
    previous = store.latest_snapshot(root)

    urls = resolver.resolve(root)

    snapshot = store.insert_snapshot(root, urls)
    new_urls = diff_new_urls(snapshot.urls, previous.urls if previous else None)
    logger.info(f"Crawled {root}: {snapshot.url_count:,} URLs, {len(new_urls):,} new")
    return CrawlResult(root, STATUS_SUCCESS, snapshot=snapshot, new_urls=new_urls)


def process_site(site_root: str, store: SnapshotStore, resolver: SitemapResolver) -> CrawlResult:
    """
    3.0 Crawl one site root for a batch run (designed for concurrent execution).

    Never raises: every failure is turned into a CrawlResult so that one
    site cannot abort the batch.
    """
    try:
        return crawl_site(site_root, store, resolver)
    except InvalidInput as e:
        logger.error(f"Invalid site root {site_root!r}: {e}")
        return CrawlResult(site_root, STATUS_INVALID, message=str(e))
    except NotFound as e:
        logger.warning(f"{e}; keeping previous snapshots of {site_root} untouched")
        return CrawlResult(site_root, STATUS_NOT_FOUND, message=str(e))
    except Exception as e:
        logger.error(f"FAILED processing site {site_root}: {type(e).__name__}: {e}")
        logger.exception("Full traceback:")
        return CrawlResult(site_root, STATUS_ERROR, message=str(e))


def tracked_site_roots(store: SnapshotStore, config: Dict[str, Any]) -> List[str]:
    """Site roots with stored snapshots plus enabled config targets, sorted."""
    return sorted(store.list_tracked_site_roots() | set(get_target_site_roots(config)))


def crawl_all(
    store: SnapshotStore,
    config: Dict[str, Any],
    site_roots: Optional[Iterable[str]] = None,
    resolver: Optional[SitemapResolver] = None,
) -> Dict[str, CrawlResult]:
    """
    4.0 Crawl every tracked site root with bounded concurrency.

    Args:
        store: Snapshot store to read history from and write snapshots to
        config: Configuration dictionary (max_concurrent_domains, fetcher settings)
        site_roots: Explicit roots to crawl (defaults to tracked_site_roots)
        resolver: Optional shared resolver (defaults to SitemapResolver(config))

    Returns:
        Crawl result per site root
    """
    roots = list(site_roots) if site_roots is not None else tracked_site_roots(store, config)
    resolver = resolver or SitemapResolver(config=config)
    max_workers = max(1, int(config.get("max_concurrent_domains", 4)))
    results: Dict[str, CrawlResult] = {}

    logger.info("=" * 60)
    logger.info(f"Crawling {len(roots)} site roots")

    if not roots:
        logger.warning("No site roots to crawl")
    elif len(roots) == 1 or max_workers == 1:
        # Single site or sequential mode - no threading overhead
        for root in roots:
            results[root] = process_site(root, store, resolver)
    else:
        logger.info(f"Using {max_workers} concurrent workers")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_root = {executor.submit(process_site, root, store, resolver): root for root in roots}
            for future in as_completed(future_to_root):
                root = future_to_root[future]
                results[root] = future.result()
                logger.info(f"Finished {root}: {results[root].status}")

    log_summary(results)
    return results


def log_summary(results: Dict[str, CrawlResult]) -> None:
    logger.info("=" * 60)
    logger.info("Crawl Summary:")
    for root, result in results.items():
        if result.ok:
            logger.info(f"  [OK] {root}: {result.snapshot.url_count:,} URLs, {len(result.new_urls):,} new")
        elif result.status == STATUS_NOT_FOUND:
            logger.warning(f"  [WARN] {root}: {result.message}")
        else:
            logger.error(f"  [FAIL] {root}: {result.message}")
    logger.info("=" * 60)
