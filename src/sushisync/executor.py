"""Runs fetches against the cache with retry, supersession and cancellation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from sushisync._abort import AbortSignal
from sushisync.cache.store import CacheStore
from sushisync.exceptions import FetchAborted
from sushisync.keys import QueryKey

_logger = logging.getLogger(__name__)

FetchFn = Callable[[AbortSignal], Awaitable[Any]]
"""Transport call for one key; receives the cancellation signal."""


@dataclass(slots=True)
class _InFlight:
    task: asyncio.Task[None]
    signal: AbortSignal
    generation: int


class RequestExecutor:
    """Fills cache entries from fetch functions.

    Parameters
    ----------
    cache : CacheStore
        Store whose generation check guards every write.
    retry_count : int
        Automatic retries before a failure is stored on the entry.
    retry_delay : float
        Seconds to wait before each retry.
    sleep : callable
        Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        cache: CacheStore,
        *,
        retry_count: int = 1,
        retry_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._inflight: dict[QueryKey, _InFlight] = {}

    async def run(
        self,
        key: QueryKey,
        fetch_fn: FetchFn,
        signal: AbortSignal | None = None,
        *,
        generation: int | None = None,
    ) -> None:
        """Fetch ``key`` once (plus retries) and settle its cache entry.

        Failures after the last retry are stored on the entry, never
        raised.  An aborted signal drops the result silently.  Pass
        ``generation`` when the caller already called ``begin_fetch``.
        """
        signal = signal or AbortSignal()
        if generation is None:
            generation = self._cache.begin_fetch(key)
        attempt = 0
        try:
            while True:
                try:
                    signal.raise_if_aborted(str(key))
                    data = await fetch_fn(signal)
                except FetchAborted:
                    self._cache.abandon(key, generation)
                    return
                except Exception as exc:
                    if signal.aborted:
                        self._cache.abandon(key, generation)
                        return
                    if attempt < self._retry_count:
                        attempt += 1
                        _logger.debug("Fetch %s failed (%s), retry %d", key, exc, attempt)
                        if self._retry_delay > 0:
                            await self._sleep(self._retry_delay)
                        continue
                    _logger.warning("Fetch %s failed after %d attempt(s): %s", key, attempt + 1, exc)
                    self._cache.reject(key, generation, exc)
                    return

                if signal.aborted:
                    # Transport ignored the signal; still drop the result.
                    self._cache.abandon(key, generation)
                    return
                self._cache.resolve(key, generation, data)
                return
        except asyncio.CancelledError:
            self._cache.abandon(key, generation)
            raise

    # ------------------------------------------------------------------
    # Background fetches
    # ------------------------------------------------------------------

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._inflight

    def ensure(self, key: QueryKey, fetch_fn: FetchFn) -> asyncio.Task[None]:
        """Start a fetch for ``key`` unless one is already running."""
        current = self._inflight.get(key)
        if current is not None:
            return current.task
        return self.start(key, fetch_fn)

    def start(self, key: QueryKey, fetch_fn: FetchFn) -> asyncio.Task[None]:
        """Start a fetch for ``key``, superseding any one in flight."""
        self.abort(key, reason="superseded", restore=False)
        signal = AbortSignal()
        # The new generation is taken before the old task unwinds, so the
        # superseded fetch can never restore its pre-fetch status.
        generation = self._cache.begin_fetch(key)
        task = asyncio.get_running_loop().create_task(self.run(key, fetch_fn, signal, generation=generation))
        record = _InFlight(task=task, signal=signal, generation=generation)
        self._inflight[key] = record

        def _done(_task: asyncio.Task[None]) -> None:
            if self._inflight.get(key) is record:
                del self._inflight[key]

        task.add_done_callback(_done)
        return task

    def abort(self, key: QueryKey, *, reason: str = "aborted", restore: bool = True) -> bool:
        """Cancel the in-flight fetch for ``key``; no state change results.

        With ``restore`` the entry goes back to its pre-fetch status right
        away, even if the task never got to run.
        """
        record = self._inflight.pop(key, None)
        if record is None:
            return False
        _logger.debug("Aborting fetch %s (%s)", key, reason)
        record.signal.abort(reason)
        record.task.cancel()
        if restore:
            self._cache.abandon(key, record.generation)
        return True

    async def aclose(self) -> None:
        """Abort every in-flight fetch and wait for the tasks to unwind."""
        records = list(self._inflight.values())
        for key in list(self._inflight):
            self.abort(key, reason="closed")
        for record in records:
            with contextlib.suppress(asyncio.CancelledError):
                await record.task
