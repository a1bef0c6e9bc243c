"""
Snapshot differ: which URLs are new since the previous crawl.

Only additions are reported. Removed URLs are deliberately left out until
the product decides it wants them.
"""

from typing import Iterable, List, Optional


def diff_new_urls(current: Iterable[str], previous: Optional[Iterable[str]]) -> List[str]:
    """
    URLs in `current` that are not in `previous`.

    A missing or empty `previous` means this is the first crawl of the site,
    which is a baseline: nothing is reported as new. Duplicates in `current`
    are reported once, in first-seen order. Neither input is modified.
    """
    if previous is None:
        return []

    previous_set = set(previous)
    if not previous_set:
        return []

    seen = set()
    added = []
    for url in current:
        if url in previous_set or url in seen:
            continue
        seen.add(url)
        added.append(url)
    return added
