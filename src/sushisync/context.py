"""Process-scoped context tying the cache, executor, mutations and overlays."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sushisync.cache.store import CacheEntry, CacheStore, QueryStatus
from sushisync.config import SyncConfig
from sushisync.exceptions import SushiSyncError
from sushisync.executor import FetchFn, RequestExecutor
from sushisync.keys import QueryKey
from sushisync.mutations import MutationCoordinator, Notification
from sushisync.overlay import Overlays

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class QueryView:
    """What a UI needs to render one query."""

    key: QueryKey
    status: QueryStatus
    data: Any = None
    error: BaseException | None = None
    fetched_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> QueryView:
        return cls(
            key=entry.key,
            status=entry.status,
            data=entry.data,
            error=entry.error,
            fetched_at=entry.fetched_at,
        )

    @property
    def is_fetching(self) -> bool:
        return self.status == QueryStatus.LOADING

    @property
    def is_loading(self) -> bool:
        """First load: fetching with nothing to show yet."""
        return self.is_fetching and self.data is None

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @property
    def is_empty(self) -> bool:
        """Successful result with no items."""
        if not self.is_success:
            return False
        try:
            return len(self.data) == 0
        except TypeError:
            return self.data is None


QueryListener = Callable[[QueryView], None]
NotificationListener = Callable[[Notification], None]


class Subscription:
    """A live watch on one query key.  See :meth:`SyncContext.watch`."""

    def __init__(self, context: SyncContext, key: QueryKey, fetch_fn: FetchFn, listener: QueryListener) -> None:
        self._context = context
        self._listener = listener
        self._key = key
        self._fetch_fn = fetch_fn
        self._unsubscribe: Callable[[], None] | None = None
        self._on_close: list[Callable[[], None]] = []

    @property
    def key(self) -> QueryKey:
        return self._key

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    @property
    def view(self) -> QueryView:
        return QueryView.from_entry(self._context.cache.get_or_create(self._key))

    def _attach(self) -> None:
        self._unsubscribe = self._context._attach(self._key, self._fetch_fn, self._listener)

    def _detach(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        self._context._release(self._key)

    def change_key(self, key: QueryKey, fetch_fn: FetchFn | None = None) -> None:
        """Re-target the watch, e.g. after the filters changed."""
        if not self.active:
            raise SushiSyncError("Subscription is closed")
        if fetch_fn is not None:
            self._fetch_fn = fetch_fn
        if key == self._key:
            self._context._fetchers[key] = self._fetch_fn
            return
        self._detach()
        self._key = key
        self._attach()

    def on_close(self, callback: Callable[[], None]) -> None:
        self._on_close.append(callback)

    def unsubscribe(self) -> None:
        """Stop watching.  Safe to call more than once."""
        if not self.active:
            return
        self._detach()
        callbacks, self._on_close = self._on_close, []
        for callback in callbacks:
            callback()


class SyncContext:
    """Explicit owner of the process-wide stores.

    Usage::

        async with SyncContext(SyncConfig()) as ctx:
            sub = ctx.watch(key, fetch_fn, render)
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or SyncConfig()
        self.cache = CacheStore(
            clock=clock,
            stale_after=self.config.stale_after_delta,
            gc_idle=self.config.gc_idle_delta,
            on_refetch=self._refetch_observed,
        )
        self.executor = RequestExecutor(
            self.cache,
            retry_count=self.config.retry_count,
            retry_delay=self.config.retry_delay,
        )
        self.mutations = MutationCoordinator(self.cache, notify=self._notify)
        self.overlays = Overlays()
        self._fetchers: dict[QueryKey, FetchFn] = {}
        self._notification_listeners: list[NotificationListener] = []
        self._sweep_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncContext:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def start(self) -> None:
        """Start the periodic garbage-collection sweep."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def close(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        await self.executor.aclose()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            self.sweep()

    def sweep(self) -> list[QueryKey]:
        removed = self.cache.sweep()
        for key in removed:
            self._fetchers.pop(key, None)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def watch(self, key: QueryKey, fetch_fn: FetchFn, listener: QueryListener) -> Subscription:
        """Subscribe ``listener`` to ``key``.

        The current view is delivered immediately.  If the entry is
        missing, invalidated or older than ``stale_after`` a background
        fetch starts; stale data stays visible while it runs.
        """
        subscription = Subscription(self, key, fetch_fn, listener)
        subscription._attach()
        return subscription

    def _attach(self, key: QueryKey, fetch_fn: FetchFn, listener: QueryListener) -> Callable[[], None]:
        self._fetchers[key] = fetch_fn
        unsubscribe = self.cache.subscribe(key, lambda entry: listener(QueryView.from_entry(entry)))
        try:
            listener(QueryView.from_entry(self.cache.get_or_create(key)))
        except Exception:
            _logger.debug("Query listener for %s failed", key, exc_info=True)
        if self.cache.is_stale(key):
            self.executor.ensure(key, fetch_fn)
        return unsubscribe

    def _release(self, key: QueryKey) -> None:
        if self.cache.subscriber_count(key) == 0:
            self.executor.abort(key, reason="no subscribers")

    async def fetch(self, key: QueryKey, fetch_fn: FetchFn) -> CacheEntry:
        """One-shot read honouring staleness.  Errors land on the entry."""
        self._fetchers[key] = fetch_fn
        if self.cache.is_stale(key):
            task = self.executor.ensure(key, fetch_fn)
            # Aborted fetches finish cancelled; that is not the caller's cancellation.
            await asyncio.wait({task})
        return self.cache.get_or_create(key)

    def refetch(self, key: QueryKey) -> asyncio.Task[None]:
        """Force a fetch for ``key`` (the retry affordance after an error)."""
        fetch_fn = self._fetchers.get(key)
        if fetch_fn is None:
            raise SushiSyncError(f"No fetch function registered for {key}")
        return self.executor.start(key, fetch_fn)

    def invalidate(self, prefix: QueryKey) -> list[QueryKey]:
        return self.cache.invalidate(prefix)

    def _refetch_observed(self, key: QueryKey) -> None:
        fetch_fn = self._fetchers.get(key)
        if fetch_fn is None:
            _logger.debug("No fetch function for invalidated key %s", key)
            return
        self.executor.start(key, fetch_fn)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def on_notification(self, listener: NotificationListener) -> Callable[[], None]:
        self._notification_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._notification_listeners:
                self._notification_listeners.remove(listener)

        return _unsubscribe

    def _notify(self, notification: Notification) -> None:
        for listener in list(self._notification_listeners):
            try:
                listener(notification)
            except Exception:
                _logger.debug("Notification listener failed", exc_info=True)
