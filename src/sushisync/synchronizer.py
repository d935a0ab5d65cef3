"""Two-way sync between :class:`FilterState` and the persisted location."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from sushisync import _constants as const
from sushisync.debounce import DebounceBuffer, Scheduler
from sushisync.exceptions import ValidationError
from sushisync.location import LocationAdapter, format_query, parse_query
from sushisync.models.filters import FILTER_FIELDS, FilterField, FilterState

_logger = logging.getLogger(__name__)

FilterListener = Callable[[FilterState], None]

_FIELDS_BY_NAME: dict[str, FilterField[Any]] = {}
for _spec in FILTER_FIELDS:
    _FIELDS_BY_NAME[_spec.key] = _spec
    _FIELDS_BY_NAME[_spec.attr] = _spec

# Only free text is debounced; enum pickers commit instantly.
_DEBOUNCED_KEYS = frozenset({"search"})


def read_filters(location: str) -> FilterState:
    """Parse recognized keys from ``location``; bad values fall back to defaults."""
    raw = parse_query(location)
    values: dict[str, Any] = {}
    for spec in FILTER_FIELDS:
        try:
            values[spec.attr] = spec.read(raw.get(spec.key))
        except ValidationError as exc:
            _logger.debug("Ignoring persisted %s=%r: %s", exc.field, exc.value, exc)
            values[spec.attr] = spec.default
    return FilterState(**values)


def write_filters(location: str, state: FilterState) -> str:
    """Return ``location`` with the recognized keys replaced by ``state``.

    Unrecognized keys are preserved; default-valued fields are omitted.
    """
    params = {k: v for k, v in parse_query(location).items() if k not in _FIELDS_BY_NAME}
    for spec in FILTER_FIELDS:
        serialized = spec.serialize(getattr(state, spec.attr))
        if serialized is not None:
            params[spec.key] = serialized
    return format_query(params)


class FilterSynchronizer:
    """Owns the list filters and mirrors them into the location.

    Commits write the location immediately, except free-text search
    committed with ``debounce=True`` which goes through a
    :class:`DebounceBuffer` so keystrokes do not each produce a write.
    Navigation (back/forward) re-reads the location without going
    through :meth:`commit`.
    """

    def __init__(
        self,
        location: LocationAdapter,
        *,
        search_debounce_ms: int = const.SEARCH_DEBOUNCE_MS,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._location = location
        self._state = read_filters(location.read_location())
        self._search = DebounceBuffer(search_debounce_ms, self._state.search, scheduler=scheduler)
        self._listeners: list[FilterListener] = []
        self._unlisten: Callable[[], None] | None = location.on_location_change(self._on_location_change)
        self._writing = False

    @property
    def state(self) -> FilterState:
        """Committed filters (what the location holds)."""
        return self._state

    @property
    def search_input(self) -> str:
        """Search text as typed, ahead of any pending debounced commit."""
        return self._search.local_value

    @property
    def has_pending(self) -> bool:
        return self._search.pending

    def read(self, location: str | None = None) -> FilterState:
        """Parse filters from ``location`` (default: the current location)."""
        return read_filters(self._location.read_location() if location is None else location)

    def commit(self, partial: Mapping[str, Any], *, debounce: bool = False) -> None:
        """Merge ``partial`` into the filters and persist the result.

        Keys may be persisted names (``sortBy``) or attribute names
        (``sort_by``).  With ``debounce=True`` the search field is
        delayed; other fields in the same call are committed at once.
        """
        changes: dict[str, Any] = {}
        for name, value in partial.items():
            spec = _FIELDS_BY_NAME.get(name)
            if spec is None:
                raise ValueError(f"Unknown filter field {name!r}")
            changes[spec.attr] = value

        if debounce and "search" in changes:
            text = changes.pop("search")
            self._search.schedule(text, self._commit_search)
        elif "search" in changes:
            self._search.cancel()
            self._search.local_value = changes["search"]

        if changes:
            self._apply(changes)

    def set_search(self, text: str) -> None:
        self.commit({"search": text}, debounce=True)

    def set_sort_by(self, value: str) -> None:
        self.commit({"sortBy": value})

    def set_type(self, value: str) -> None:
        self.commit({"type": value})

    def reset(self) -> None:
        """Restore defaults and drop every recognized key from the location."""
        self._search.cancel()
        self._search.local_value = ""
        self._apply(FilterState().model_dump())

    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispose(self) -> None:
        """Detach from the location; a pending search commit is dropped."""
        self._search.dispose()
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _commit_search(self, text: str) -> None:
        self._apply({"search": text})

    def _apply(self, changes: Mapping[str, Any]) -> None:
        state = FilterState.model_validate({**self._state.model_dump(), **changes})
        current = self._location.read_location()
        persisted = write_filters(current, state)
        changed = state != self._state
        self._state = state
        if persisted != current:
            self._writing = True
            try:
                self._location.write_location(persisted, push=True)
            finally:
                self._writing = False
        if changed:
            self._emit()

    def _on_location_change(self, location: str) -> None:
        if self._writing:
            return
        state = read_filters(location)
        self._search.cancel()
        self._search.local_value = state.search
        if state == self._state:
            return
        self._state = state
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                _logger.debug("Filter listener failed", exc_info=True)
