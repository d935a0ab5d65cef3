"""Query cache: keyed entries, staleness and garbage collection."""

from sushisync.cache.store import CacheEntry, CacheStore, QueryStatus

__all__ = ["CacheEntry", "CacheStore", "QueryStatus"]
