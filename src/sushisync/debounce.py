"""Trailing-edge debounce buffer and the timer seam it runs on."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, Protocol, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Structural timer interface.

    The production implementation wraps the running asyncio loop; tests
    pass a manual scheduler so no real time has to elapse.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class DebounceBuffer(Generic[T]):
    """Delays a rapidly-changing value until input goes quiet.

    ``schedule`` stores the value immediately (readable as
    :attr:`local_value`) and restarts the timer.  Only the last value
    scheduled before the delay elapses is committed, exactly once.
    There is no leading-edge call and no max-wait cap.
    """

    def __init__(
        self,
        delay_ms: int,
        initial: T,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.delay_ms = delay_ms
        self.local_value: T = initial
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._pending: TimerHandle | None = None
        self._token = 0
        self._disposed = False

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def schedule(self, value: T, commit: Callable[[T], None]) -> None:
        self.local_value = value
        if self._disposed:
            _logger.debug("Ignoring schedule on disposed debounce buffer")
            return
        self.cancel()

        token = self._token

        def _fire() -> None:
            # A cancelled timer may still fire if the scheduler raced it.
            if self._disposed or token != self._token:
                return
            self._pending = None
            commit(value)

        self._pending = self._scheduler.call_later(self.delay_ms / 1000.0, _fire)

    def cancel(self) -> None:
        """Drop the pending commit, if any.  ``local_value`` is kept."""
        self._token += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def dispose(self) -> None:
        """Cancel the pending commit; it is dropped, never flushed."""
        self.cancel()
        self._disposed = True
