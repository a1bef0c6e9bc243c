"""
1.0 Command Line Module
Entry point for crawling site roots and viewing stored snapshots.

Commands:
- crawl SITE_ROOT      on-demand crawl of one site root
- crawl-all            batch crawl of every tracked site root (for cron)
- list                 snapshots grouped by host, newest first, paginated
- show ID              one snapshot with its previous snapshot and new URLs
- delete ID            remove one snapshot
- count                number of distinct tracked site roots
"""

import argparse
import logging
import sys
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sitemap_delta.config import CONFIG_FILE_PATH, load_config
from sitemap_delta.crawler import crawl_all, crawl_site
from sitemap_delta.differ import diff_new_urls
from sitemap_delta.errors import InvalidInput, NotFound, SnapshotNotFound
from sitemap_delta.resolver import SitemapResolver
from sitemap_delta.storage import Snapshot, SnapshotStore, find_previous_snapshot
from sitemap_delta.url_utils import get_host

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
OTHER_GROUP = "Other"


def setup_logging(log_file: Optional[str], verbose: bool = False) -> None:
    """1.1 Log to stderr and, when configured, to a file."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


# =============================================================================
# 2.0 PRESENTATION HELPERS
# =============================================================================

def group_by_host(snapshots: List[Snapshot]) -> Dict[str, List[Snapshot]]:
    """Group snapshots by site host, keeping input order within each group."""
    groups: Dict[str, List[Snapshot]] = OrderedDict()
    for snapshot in snapshots:
        host = get_host(snapshot.site_root) or OTHER_GROUP
        groups.setdefault(host, []).append(snapshot)
    return groups


def new_urls_for(history: List[Snapshot], snapshot: Snapshot) -> List[str]:
    """New URLs of `snapshot` against its previous snapshot within `history`."""
    previous = find_previous_snapshot(history, snapshot)
    return diff_new_urls(snapshot.urls, list(previous.urls) if previous else None)


def _format_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def print_snapshot_list(store: SnapshotStore, page: int, page_size: int) -> None:
    snapshots = store.recent_snapshots(page=page, page_size=page_size)
    if not snapshots:
        print("No snapshots stored." if page == 1 else f"No snapshots on page {page}.")
        return

    history = store.all_snapshots()
    for host, group in group_by_host(snapshots).items():
        label = "snapshot" if len(group) == 1 else "snapshots"
        print(f"\n{host} ({len(group)} {label})")
        print("-" * 50)
        for snapshot in group:
            new_count = len(new_urls_for(history, snapshot))
            print(
                f"  #{snapshot.id}  {snapshot.site_root}  "
                f"{_format_time(snapshot.created_at)}  "
                f"{snapshot.url_count:,} URLs, {new_count:,} new"
            )
    print(f"\nPage {page} ({len(snapshots)} shown, {store.count_site_roots()} site roots tracked)")


def print_snapshot(store: SnapshotStore, snapshot: Snapshot, show_all: bool = False) -> None:
    previous = store.previous_snapshot(snapshot)
    new_urls = diff_new_urls(snapshot.urls, list(previous.urls) if previous else None)

    print(f"\n{'='*50}")
    print(f"Snapshot #{snapshot.id}: {snapshot.site_root}")
    print(f"{'='*50}")
    print(f"Created:  {_format_time(snapshot.created_at)}")
    print(f"URLs:     {snapshot.url_count:,}")
    if previous:
        print(f"Previous: #{previous.id} at {_format_time(previous.created_at)} ({previous.url_count:,} URLs)")
    else:
        print("Previous: none (baseline crawl)")

    print(f"\nNew URLs ({len(new_urls)}):")
    for url in new_urls:
        print(f"  + {url}")

    if show_all:
        print(f"\nAll URLs ({snapshot.url_count}):")
        for url in snapshot.urls:
            print(f"  {url}")
    print(f"{'='*50}\n")


# =============================================================================
# 3.0 COMMANDS
# =============================================================================

def cmd_crawl(args, config, store: SnapshotStore) -> int:
    resolver = SitemapResolver(config=config)
    try:
        result = crawl_site(args.site_root, store, resolver)
    except InvalidInput as e:
        logger.error(f"Invalid site root: {e}")
        return 1
    except NotFound as e:
        logger.error(f"{e}. Stored snapshots left untouched.")
        return 1
    print_snapshot(store, result.snapshot)
    return 0


def cmd_crawl_all(args, config, store: SnapshotStore) -> int:
    results = crawl_all(store, config)
    failed = [root for root, result in results.items() if not result.ok]
    return 1 if failed and args.strict else 0


def cmd_list(args, config, store: SnapshotStore) -> int:
    print_snapshot_list(store, args.page, args.page_size)
    return 0


def cmd_show(args, config, store: SnapshotStore) -> int:
    try:
        snapshot = store.get_snapshot(args.snapshot_id)
    except SnapshotNotFound as e:
        logger.error(str(e))
        return 1
    print_snapshot(store, snapshot, show_all=args.all)
    return 0


def cmd_delete(args, config, store: SnapshotStore) -> int:
    try:
        store.delete_snapshot(args.snapshot_id)
    except SnapshotNotFound as e:
        logger.error(str(e))
        return 1
    print(f"Deleted snapshot #{args.snapshot_id}")
    return 0


def cmd_count(args, config, store: SnapshotStore) -> int:
    print(store.count_site_roots())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitemap-delta",
        description="Track the URLs a website publishes in its sitemap and show what is new",
    )
    parser.add_argument(
        "--config", "-c",
        default=CONFIG_FILE_PATH,
        help=f"Configuration file (default: {CONFIG_FILE_PATH})"
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Data directory (default: data_directory from config)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl = subparsers.add_parser("crawl", help="Crawl one site root now")
    crawl.add_argument("site_root", help="Site root, e.g. https://example.com")
    crawl.set_defaults(func=cmd_crawl)

    crawl_all_cmd = subparsers.add_parser("crawl-all", help="Crawl every tracked site root")
    crawl_all_cmd.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero if any site failed"
    )
    crawl_all_cmd.set_defaults(func=cmd_crawl_all)

    list_cmd = subparsers.add_parser("list", help="List snapshots grouped by host")
    list_cmd.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_cmd.add_argument("--page-size", type=int, default=10, help="Snapshots per page (default: 10)")
    list_cmd.set_defaults(func=cmd_list)

    show = subparsers.add_parser("show", help="Show one snapshot and its new URLs")
    show.add_argument("snapshot_id", type=int)
    show.add_argument("--all", action="store_true", help="Also print every URL of the snapshot")
    show.set_defaults(func=cmd_show)

    delete = subparsers.add_parser("delete", help="Delete one snapshot")
    delete.add_argument("snapshot_id", type=int)
    delete.set_defaults(func=cmd_delete)

    count = subparsers.add_parser("count", help="Number of tracked site roots")
    count.set_defaults(func=cmd_count)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    4.0 Parse arguments, load configuration and run one command.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if config is None:
        setup_logging(None, args.verbose)
        logger.error("Failed to load or validate configuration. Exiting.")
        return 2

    setup_logging(config.get("log_file"), args.verbose)
    logger.debug(f"Run timestamp: {datetime.now(timezone.utc).isoformat()}")

    store = SnapshotStore(data_dir=args.data_dir or config.get("data_directory", "output"))
    return args.func(args, config, store)


if __name__ == "__main__":
    sys.exit(main())
