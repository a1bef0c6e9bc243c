"""
STORAGE TESTS - snapshot persistence, codec and the derived previous snapshot.
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from sitemap_delta.errors import InvalidInput, SnapshotNotFound
from sitemap_delta.storage import (
    SNAPSHOT_COLUMNS,
    Snapshot,
    SnapshotStore,
    decode_urls,
    encode_urls,
    find_previous_snapshot,
)

ROOT = "https://example.com"
OTHER = "https://other.example.org"


# =============================================================================
# 1. CODEC
# =============================================================================

def test_encode_joins_with_commas():
    assert encode_urls([f"{ROOT}/a", f"{ROOT}/b"]) == f"{ROOT}/a,{ROOT}/b"
    assert encode_urls([]) == ""


def test_decode_drops_empty_segments():
    assert decode_urls(f",{ROOT}/a,,{ROOT}/b,") == [f"{ROOT}/a", f"{ROOT}/b"]
    assert decode_urls("") == []
    assert decode_urls(None) == []


def test_decode_keeps_commas_inside_urls():
    urls = [f"{ROOT}/tags/a,b", f"{ROOT}/c", f"{ROOT}/list?ids=1,2,3"]
    assert decode_urls(encode_urls(urls)) == urls


def test_stored_urls_with_commas_survive_reload(store):
    inserted = store.insert_snapshot(ROOT, [f"{ROOT}/tags/a,b", f"{ROOT}/c"])
    assert store.get_snapshot(inserted.id).urls == inserted.urls


# =============================================================================
# 2. PREVIOUS SNAPSHOT (pure function)
# =============================================================================

def _snap(snapshot_id, root, minutes, urls=()):
    created = datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes)
    return Snapshot(id=snapshot_id, site_root=root, created_at=created, urls=tuple(urls))


def test_previous_is_latest_earlier_snapshot_of_same_root():
    snapshots = [_snap(1, ROOT, 0), _snap(2, OTHER, 5), _snap(3, ROOT, 10), _snap(4, ROOT, 20)]
    assert find_previous_snapshot(snapshots, snapshots[3]).id == 3
    assert find_previous_snapshot(snapshots, snapshots[2]).id == 1
    assert find_previous_snapshot(snapshots, snapshots[0]) is None
    assert find_previous_snapshot(snapshots, snapshots[1]) is None


def test_previous_ignores_later_snapshots_and_input_order():
    snapshots = [_snap(4, ROOT, 20), _snap(1, ROOT, 0), _snap(3, ROOT, 10)]
    assert find_previous_snapshot(snapshots, snapshots[2]).id == 1


# =============================================================================
# 3. STORE
# =============================================================================

def test_insert_and_find(store):
    first = store.insert_snapshot(ROOT + "/", [f"{ROOT}/a", f"{ROOT}/b", f"{ROOT}/a", ""])
    second = store.insert_snapshot(ROOT, [f"{ROOT}/a"])
    store.insert_snapshot(OTHER, [f"{OTHER}/x"])

    assert first.site_root == ROOT
    assert first.urls == (f"{ROOT}/a", f"{ROOT}/b")
    assert second.id == first.id + 1
    assert second.created_at > first.created_at
    assert [s.id for s in store.find_snapshots(ROOT)] == [first.id, second.id]
    assert store.latest_snapshot(ROOT) == second


def test_store_survives_reload(store):
    inserted = store.insert_snapshot(ROOT, [f"{ROOT}/a", f"{ROOT}/b"])
    reloaded = SnapshotStore(data_dir=store.data_dir)
    assert reloaded.get_snapshot(inserted.id) == inserted


def test_csv_layout(store):
    store.insert_snapshot(ROOT, [f"{ROOT}/a", f"{ROOT}/b"])
    df = pd.read_csv(store.path, dtype=str, keep_default_na=False)
    assert list(df.columns) == SNAPSHOT_COLUMNS
    assert df.loc[0, "urls"] == f"{ROOT}/a,{ROOT}/b"
    assert df.loc[0, "url_count"] == "2"


def test_empty_snapshot_round_trips(store):
    inserted = store.insert_snapshot(ROOT, [])
    assert store.get_snapshot(inserted.id).urls == ()


def test_insert_rejects_invalid_site_root(store):
    with pytest.raises(InvalidInput):
        store.insert_snapshot("example.com", [])


def test_previous_urls_derived_at_read_time(store):
    first = store.insert_snapshot(ROOT, [f"{ROOT}/a"])
    second = store.insert_snapshot(ROOT, [f"{ROOT}/a", f"{ROOT}/b"])
    third = store.insert_snapshot(ROOT, [f"{ROOT}/a", f"{ROOT}/b", f"{ROOT}/c"])

    assert store.previous_urls(first) is None
    assert store.previous_urls(third) == [f"{ROOT}/a", f"{ROOT}/b"]

    store.delete_snapshot(second.id)
    assert store.previous_urls(third) == [f"{ROOT}/a"]
    assert store.get_snapshot(first.id) == first


def test_delete_unknown_snapshot(store):
    with pytest.raises(SnapshotNotFound):
        store.delete_snapshot(42)
    store.insert_snapshot(ROOT, [])
    with pytest.raises(SnapshotNotFound):
        store.delete_snapshot(42)


def test_get_unknown_snapshot(store):
    with pytest.raises(SnapshotNotFound):
        store.get_snapshot(1)


def test_tracked_roots_and_count(store):
    assert store.list_tracked_site_roots() == set()
    store.insert_snapshot(ROOT, [])
    store.insert_snapshot(ROOT, [])
    store.insert_snapshot(OTHER, [])
    assert store.list_tracked_site_roots() == {ROOT, OTHER}
    assert store.count_site_roots() == 2


def test_recent_snapshots_are_paginated_newest_first(store):
    ids = [store.insert_snapshot(ROOT, []).id for _ in range(5)]
    assert [s.id for s in store.recent_snapshots(page=1, page_size=2)] == [ids[4], ids[3]]
    assert [s.id for s in store.recent_snapshots(page=3, page_size=2)] == [ids[0]]
    assert store.recent_snapshots(page=4, page_size=2) == []
