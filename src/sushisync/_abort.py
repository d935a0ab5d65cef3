"""Cooperative cancellation signal handed to fetch functions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sushisync.exceptions import FetchAborted

_logger = logging.getLogger(__name__)


class AbortSignal:
    """One-shot cancellation flag.

    The signal is advisory: transports should stop work once it fires,
    but the cache generation check stays authoritative for transports
    that ignore it.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: str = ""
        self._listeners: list[Callable[[], None]] = []
        self._event: asyncio.Event | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> str:
        return self._reason

    def abort(self, reason: str = "aborted") -> None:
        """Fire the signal.  Repeated calls are no-ops."""
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        if self._event is not None:
            self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception:
                _logger.debug("Abort listener failed", exc_info=True)

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call ``listener`` once when the signal fires; returns a remover."""
        if self._aborted:
            listener()
            return lambda: None
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def raise_if_aborted(self, endpoint: str = "") -> None:
        if self._aborted:
            raise FetchAborted(f"Request aborted: {self._reason}", endpoint=endpoint)

    async def wait(self) -> None:
        """Block until the signal fires."""
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()
