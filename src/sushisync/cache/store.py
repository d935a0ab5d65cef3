"""In-memory query cache.

This is the only component allowed to change a :class:`CacheEntry`.
Every fetch bumps the entry's generation; a result is applied only if
it carries the current generation, so out-of-order completions from
superseded requests can never overwrite newer state.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from sushisync.cache.policy import is_collectable, is_stale
from sushisync.keys import QueryKey

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class QueryStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class CacheEntry:
    """State of one cached query.

    Consumers only ever see copies; mutate through :class:`CacheStore`.
    """

    key: QueryKey
    stale_after: timedelta
    last_active: datetime
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: BaseException | None = None
    fetched_at: datetime | None = None
    subscriber_count: int = 0
    generation: int = 0
    invalidated: bool = False
    # Status to restore if the in-flight fetch is aborted.
    settled_status: QueryStatus = field(default=QueryStatus.IDLE, repr=False)


EntryListener = Callable[[CacheEntry], None]
RefetchHandler = Callable[[QueryKey], None]


class CacheStore:
    """Process-wide query cache.

    Parameters
    ----------
    clock : callable
        Returns the current aware datetime.  Injected by tests.
    stale_after : timedelta
        How long a successful result is served without a network call.
    gc_idle : timedelta
        How long an unobserved entry survives before :meth:`sweep`.
    on_refetch : callable, optional
        Invoked by :meth:`invalidate` for each matching entry that has
        subscribers.  The owning context wires this to the executor.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        stale_after: timedelta = timedelta(minutes=3),
        gc_idle: timedelta = timedelta(minutes=5),
        on_refetch: RefetchHandler | None = None,
    ) -> None:
        self._clock = clock
        self._stale_after = stale_after
        self._gc_idle = gc_idle
        self._on_refetch = on_refetch
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._listeners: dict[QueryKey, list[EntryListener]] = {}

    def set_refetch_handler(self, handler: RefetchHandler | None) -> None:
        self._on_refetch = handler

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _entry(self, key: QueryKey) -> CacheEntry:
        if key.is_prefix:
            raise ValueError(f"Cannot store entries under prefix key {key}")
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, stale_after=self._stale_after, last_active=self._clock())
            self._entries[key] = entry
        return entry

    def get_or_create(self, key: QueryKey) -> CacheEntry:
        """Return a copy of the entry, creating an ``idle`` one if needed."""
        return copy.copy(self._entry(key))

    def peek(self, key: QueryKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        return copy.copy(entry) if entry is not None else None

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return True
        return is_stale(entry, self._clock())

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, key: QueryKey, listener: EntryListener) -> Callable[[], None]:
        """Observe ``key``.  The returned callable unsubscribes (idempotent)."""
        entry = self._entry(key)
        entry.subscriber_count += 1
        entry.last_active = self._clock()
        self._listeners.setdefault(key, []).append(listener)
        active = True

        def _unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(key, None)
            current = self._entries.get(key)
            if current is not None:
                current.subscriber_count = max(0, current.subscriber_count - 1)
                current.last_active = self._clock()

        return _unsubscribe

    def subscriber_count(self, key: QueryKey) -> int:
        entry = self._entries.get(key)
        return entry.subscriber_count if entry is not None else 0

    def _notify(self, entry: CacheEntry) -> None:
        entry.last_active = self._clock()
        snapshot = copy.copy(entry)
        for listener in list(self._listeners.get(entry.key, ())):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Cache listener for %s failed", entry.key, exc_info=True)

    # ------------------------------------------------------------------
    # Fetch lifecycle
    # ------------------------------------------------------------------

    def begin_fetch(self, key: QueryKey) -> int:
        """Move the entry to ``loading`` and return the new generation.

        Superseding a fetch that is still loading bumps the generation
        without notifying; nothing observable changed.
        """
        entry = self._entry(key)
        already_loading = entry.status == QueryStatus.LOADING
        if not already_loading:
            entry.settled_status = entry.status
        entry.generation += 1
        entry.status = QueryStatus.LOADING
        _logger.debug("Fetch %s generation=%d", key, entry.generation)
        if not already_loading:
            self._notify(entry)
        return entry.generation

    def _current(self, key: QueryKey, generation: int) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None or entry.generation != generation:
            _logger.debug(
                "Discarding superseded result for %s generation=%d (current=%s)",
                key,
                generation,
                entry.generation if entry is not None else None,
            )
            return None
        return entry

    def resolve(self, key: QueryKey, generation: int, data: Any) -> bool:
        """Store a successful result if ``generation`` is still current."""
        entry = self._current(key, generation)
        if entry is None:
            return False
        entry.status = QueryStatus.SUCCESS
        entry.data = data
        entry.error = None
        entry.fetched_at = self._clock()
        entry.invalidated = False
        self._notify(entry)
        return True

    def reject(self, key: QueryKey, generation: int, error: BaseException) -> bool:
        """Store a failure if ``generation`` is still current.

        Previously successful ``data`` is kept so consumers can keep
        rendering the last known good result next to the error.
        """
        entry = self._current(key, generation)
        if entry is None:
            return False
        entry.status = QueryStatus.ERROR
        entry.error = error
        self._notify(entry)
        return True

    def abandon(self, key: QueryKey, generation: int) -> bool:
        """Undo ``begin_fetch`` for an aborted request.

        The entry returns to the status it had before the fetch began so
        cancellation leaves no trace.  Listeners are not notified of an
        error.
        """
        entry = self._current(key, generation)
        if entry is None or entry.status != QueryStatus.LOADING:
            return False
        entry.status = entry.settled_status
        _logger.debug("Fetch %s generation=%d aborted", key, generation)
        self._notify(entry)
        return True

    # ------------------------------------------------------------------
    # Invalidation & garbage collection
    # ------------------------------------------------------------------

    def invalidate(self, prefix: QueryKey) -> list[QueryKey]:
        """Mark matching entries stale and refetch the observed ones.

        Returns the keys that were marked.
        """
        marked: list[QueryKey] = []
        observed: list[QueryKey] = []
        for key, entry in list(self._entries.items()):
            if not key.matches(prefix):
                continue
            entry.invalidated = True
            marked.append(key)
            if entry.subscriber_count > 0:
                observed.append(key)
        _logger.debug("Invalidated %d entries under %s (%d observed)", len(marked), prefix, len(observed))
        if self._on_refetch is not None:
            for key in observed:
                self._on_refetch(key)
        return marked

    def sweep(self) -> list[QueryKey]:
        """Drop entries that have been unobserved longer than the idle window."""
        now = self._clock()
        removed = [key for key, entry in self._entries.items() if is_collectable(entry, now, self._gc_idle)]
        for key in removed:
            del self._entries[key]
            self._listeners.pop(key, None)
        if removed:
            _logger.debug("Swept %d idle cache entries", len(removed))
        return removed

    def clear(self) -> None:
        self._entries.clear()
        self._listeners.clear()
