"""Staleness and garbage-collection policy.

Pure functions of an entry and the current time; the store decides
when to call them.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sushisync.cache.store import CacheEntry


def is_stale(entry: CacheEntry, now: datetime) -> bool:
    """Whether the next read must go to the network.

    Never-fetched, invalidated and errored entries are always stale.
    """
    if entry.invalidated or entry.fetched_at is None:
        return True
    if entry.status.value == "error":
        return True
    return now - entry.fetched_at >= entry.stale_after


def is_collectable(entry: CacheEntry, now: datetime, idle: timedelta) -> bool:
    """Unobserved for at least ``idle`` and not mid-fetch."""
    if entry.subscriber_count > 0:
        return False
    if entry.status.value == "loading":
        return False
    return now - entry.last_active >= idle
