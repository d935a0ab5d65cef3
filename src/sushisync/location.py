"""Persisted location boundary (the query string of the current URL)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Protocol
from urllib.parse import parse_qsl, urlencode

_logger = logging.getLogger(__name__)

LocationListener = Callable[[str], None]


def parse_query(value: str) -> dict[str, str]:
    """Parse ``"?a=1&b=2"`` (leading ``?`` optional); last value wins."""
    return dict(parse_qsl(value.lstrip("?"), keep_blank_values=True))


def format_query(params: Mapping[str, str]) -> str:
    """Inverse of :func:`parse_query`.  Empty mapping gives ``""``."""
    if not params:
        return ""
    return "?" + urlencode(list(params.items()))


class LocationAdapter(Protocol):
    """Structural interface supplied by the routing layer."""

    def read_location(self) -> str: ...

    def write_location(self, value: str, *, push: bool) -> None: ...

    def on_location_change(self, listener: LocationListener) -> Callable[[], None]: ...


class MemoryLocation:
    """In-memory history stack.

    ``write_location`` behaves like ``history.pushState``/``replaceState``:
    it changes the current entry without notifying listeners.  Only
    :meth:`back`, :meth:`forward` and :meth:`navigate` notify, the way a
    browser fires ``popstate``.
    """

    def __init__(self, initial: str = "") -> None:
        self._entries: list[str] = [initial]
        self._index = 0
        self._listeners: list[LocationListener] = []

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def index(self) -> int:
        return self._index

    def read_location(self) -> str:
        return self._entries[self._index]

    def write_location(self, value: str, *, push: bool) -> None:
        if push:
            del self._entries[self._index + 1 :]
            self._entries.append(value)
            self._index += 1
        else:
            self._entries[self._index] = value

    def on_location_change(self, listener: LocationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        self._emit()
        return True

    def forward(self) -> bool:
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        self._emit()
        return True

    def navigate(self, value: str) -> None:
        """External navigation (e.g. a pasted link): push and notify."""
        self.write_location(value, push=True)
        self._emit()

    def _emit(self) -> None:
        current = self.read_location()
        for listener in list(self._listeners):
            try:
                listener(current)
            except Exception:
                _logger.debug("Location listener failed", exc_info=True)
