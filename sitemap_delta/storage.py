"""
1.0 Snapshot Storage Module
Persists one row per completed crawl and answers the read-side questions
the command line and the batch crawler ask.

Key features:
- Single CSV table (snapshots.csv) read and written with pandas
- URL collections stored as a comma-joined field; encode/decode happen only here
- "Previous snapshot" derived at read time, never stored as a link
- Atomic file replace under a lock so concurrent crawls never lose a row
"""

import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from sitemap_delta.errors import SnapshotNotFound
from sitemap_delta.url_utils import is_absolute_http_url, normalize_site_root, unique_absolute_urls

logger = logging.getLogger(__name__)

# 1.1 Column name constants for consistency
COL_ID = "id"
COL_SITE_ROOT = "site_root"
COL_CREATED_AT = "created_at"
COL_URLS = "urls"
COL_URL_COUNT = "url_count"

SNAPSHOT_COLUMNS = [COL_ID, COL_SITE_ROOT, COL_CREATED_AT, COL_URLS, COL_URL_COUNT]
SNAPSHOT_FILE_NAME = "snapshots.csv"
URL_SEPARATOR = ","


# =============================================================================
# 2.0 URL COLLECTION CODEC
# =============================================================================

def encode_urls(urls: Iterable[str]) -> str:
    """Join a URL collection into the stored comma-separated field."""
    return URL_SEPARATOR.join(url.strip() for url in urls if url and url.strip())


def decode_urls(value: Optional[str]) -> List[str]:
    """
    2.1 Split a stored field back into URLs, dropping empty segments.

    Stored entries are always absolute http(s) URLs, so a segment that is not
    one is the tail of a URL that itself contained a comma and is glued back
    onto the URL before it.
    """
    if not isinstance(value, str) or not value:
        return []

    urls: List[str] = []
    for segment in value.split(URL_SEPARATOR):
        segment = segment.strip()
        if not segment:
            continue
        if urls and not is_absolute_http_url(segment):
            urls[-1] = f"{urls[-1]}{URL_SEPARATOR}{segment}"
        else:
            urls.append(segment)
    return urls


# =============================================================================
# 3.0 SNAPSHOT RECORD
# =============================================================================

@dataclass(frozen=True)
class Snapshot:
    id: int
    site_root: str
    created_at: datetime
    urls: Tuple[str, ...]

    @property
    def url_count(self) -> int:
        return len(self.urls)


def find_previous_snapshot(snapshots: Sequence[Snapshot], snapshot: Snapshot) -> Optional[Snapshot]:
    """
    3.1 The snapshot that precedes `snapshot` for the same site root.

    That is the most recently created other snapshot of the same site root
    with an earlier creation time, or None when there is none.
    """
    earlier = [
        s for s in snapshots
        if s.site_root == snapshot.site_root and s.id != snapshot.id and s.created_at < snapshot.created_at
    ]
    if not earlier:
        return None
    return max(earlier, key=lambda s: (s.created_at, s.id))


# =============================================================================
# 4.0 SNAPSHOT STORE
# =============================================================================

class SnapshotStore:
    """
    4.0 SnapshotStore Class
    CSV-backed store of crawl snapshots.
    """

    def __init__(self, data_dir: str = "output"):
        """
        4.1 Initialize the store.

        Args:
            data_dir: Directory holding snapshots.csv (created if missing)
        """
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)
        self.path = os.path.join(self.data_dir, SNAPSHOT_FILE_NAME)
        self._lock = threading.Lock()
        logger.debug(f"SnapshotStore initialized at {self.path}")

    # -------------------------------------------------------------------------
    # 4.2 File helpers
    # -------------------------------------------------------------------------

    def _load(self) -> pd.DataFrame:
        if not os.path.exists(self.path):
            return pd.DataFrame(columns=SNAPSHOT_COLUMNS)

        # Everything as str: empty URL fields must stay "" rather than NaN
        df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        missing_cols = [c for c in SNAPSHOT_COLUMNS if c not in df.columns]
        if missing_cols:
            logger.warning(f"Snapshot file {self.path} missing columns: {missing_cols}")
            df = df.reindex(columns=SNAPSHOT_COLUMNS, fill_value="")
        return df

    def _save(self, df: pd.DataFrame) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=".snapshots-", suffix=".csv")
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                df[SNAPSHOT_COLUMNS].to_csv(f, index=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @staticmethod
    def _row_to_snapshot(row: pd.Series) -> Snapshot:
        return Snapshot(
            id=int(row[COL_ID]),
            site_root=row[COL_SITE_ROOT],
            created_at=datetime.fromisoformat(row[COL_CREATED_AT]),
            urls=tuple(decode_urls(row[COL_URLS])),
        )

    def _snapshots(self, df: pd.DataFrame) -> List[Snapshot]:
        snapshots = [self._row_to_snapshot(row) for _, row in df.iterrows()]
        return sorted(snapshots, key=lambda s: (s.created_at, s.id))

    # -------------------------------------------------------------------------
    # 4.3 Write operations
    # -------------------------------------------------------------------------

    def insert_snapshot(self, site_root: str, urls: Iterable[str]) -> Snapshot:
        """
        4.3.1 Store a completed crawl as a new snapshot.

        Creation times are strictly increasing within one store, so two
        crawls recorded in the same clock tick still have a defined order.
        """
        root = normalize_site_root(site_root)
        url_list = unique_absolute_urls(urls)

        with self._lock:
            df = self._load()
            existing = self._snapshots(df)

            next_id = max((s.id for s in existing), default=0) + 1
            created_at = datetime.now(timezone.utc)
            if existing and created_at <= existing[-1].created_at:
                created_at = existing[-1].created_at + timedelta(microseconds=1)

            snapshot = Snapshot(id=next_id, site_root=root, created_at=created_at, urls=tuple(url_list))
            new_row = pd.DataFrame([{
                COL_ID: str(snapshot.id),
                COL_SITE_ROOT: snapshot.site_root,
                COL_CREATED_AT: snapshot.created_at.isoformat(timespec="microseconds"),
                COL_URLS: encode_urls(snapshot.urls),
                COL_URL_COUNT: str(snapshot.url_count),
            }])
            df = new_row if df.empty else pd.concat([df, new_row], ignore_index=True)
            self._save(df)

        logger.info(f"Stored snapshot {snapshot.id} for {root}: {snapshot.url_count:,} URLs")
        return snapshot

    def delete_snapshot(self, snapshot_id: int) -> None:
        """4.3.2 Remove one snapshot; other snapshots are unaffected."""
        with self._lock:
            df = self._load()
            mask = df[COL_ID].astype(int) == int(snapshot_id) if not df.empty else pd.Series([], dtype=bool)
            if not mask.any():
                raise SnapshotNotFound(f"No snapshot with id {snapshot_id}")
            self._save(df[~mask])
        logger.info(f"Deleted snapshot {snapshot_id}")

    # -------------------------------------------------------------------------
    # 4.4 Read operations
    # -------------------------------------------------------------------------

    def all_snapshots(self) -> List[Snapshot]:
        """Every snapshot, oldest first."""
        with self._lock:
            df = self._load()
        return self._snapshots(df)

    def find_snapshots(self, site_root: str) -> List[Snapshot]:
        """Snapshots of one site root, oldest first."""
        root = normalize_site_root(site_root)
        return [s for s in self.all_snapshots() if s.site_root == root]

    def get_snapshot(self, snapshot_id: int) -> Snapshot:
        for snapshot in self.all_snapshots():
            if snapshot.id == int(snapshot_id):
                return snapshot
        raise SnapshotNotFound(f"No snapshot with id {snapshot_id}")

    def latest_snapshot(self, site_root: str) -> Optional[Snapshot]:
        snapshots = self.find_snapshots(site_root)
        return snapshots[-1] if snapshots else None

    def list_tracked_site_roots(self) -> Set[str]:
        with self._lock:
            df = self._load()
        return set(df[COL_SITE_ROOT]) if not df.empty else set()

    def count_site_roots(self) -> int:
        return len(self.list_tracked_site_roots())

    def recent_snapshots(self, page: int = 1, page_size: int = 10) -> List[Snapshot]:
        """
        4.4.1 One page of snapshots, newest first.

        Args:
            page: 1-based page number
            page_size: Snapshots per page
        """
        page = max(1, int(page))
        page_size = max(1, int(page_size))
        newest_first = list(reversed(self.all_snapshots()))
        start = (page - 1) * page_size
        return newest_first[start:start + page_size]

    def previous_snapshot(self, snapshot: Snapshot) -> Optional[Snapshot]:
        return find_previous_snapshot(self.find_snapshots(snapshot.site_root), snapshot)

    def previous_urls(self, snapshot: Snapshot) -> Optional[List[str]]:
        """URLs of the derived previous snapshot, or None for a first crawl."""
        previous = self.previous_snapshot(snapshot)
        return list(previous.urls) if previous else None
