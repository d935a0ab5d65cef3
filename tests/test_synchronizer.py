from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import pydantic
import pytest

from sushisync.location import MemoryLocation, format_query, parse_query
from sushisync.models.filters import FilterState, SortOption, TypeOption
from sushisync.synchronizer import FilterSynchronizer, read_filters, write_filters


@dataclass
class _Timer:
    when: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[_Timer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(round(self.now + delay, 6), callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = round(self.now + seconds, 6)
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target


def _sync(initial: str = "") -> tuple[FilterSynchronizer, MemoryLocation, ManualScheduler]:
    location = MemoryLocation(initial)
    scheduler = ManualScheduler()
    return FilterSynchronizer(location, search_debounce_ms=2000, scheduler=scheduler), location, scheduler


def test_read_parses_valid_values() -> None:
    state = read_filters("?search=salmon+roll&sortBy=price&type=Roll")

    assert state == FilterState(search="salmon roll", sort_by=SortOption.PRICE, type=TypeOption.ROLL)


@pytest.mark.parametrize(
    "location",
    ["", "?sortBy=weight", "?type=Sashimi", "?type=roll", "?unrelated=1"],
)
def test_read_falls_back_to_defaults(location: str) -> None:
    state = read_filters(location)

    assert state.sort_by == SortOption.NAME
    assert state.type == TypeOption.ALL


def test_read_keeps_valid_fields_next_to_invalid_ones() -> None:
    state = read_filters("?sortBy=bogus&type=Nigiri")

    assert state.sort_by == SortOption.NAME
    assert state.type == TypeOption.NIGIRI


def test_write_omits_defaults_and_preserves_other_keys() -> None:
    assert write_filters("?page=2&type=Roll", FilterState()) == "?page=2"
    assert parse_query(write_filters("", FilterState(type=TypeOption.NIGIRI))) == {"type": "Nigiri"}


def test_commit_then_read_round_trip() -> None:
    sync, location, _ = _sync()

    sync.commit({"search": "salmon"})

    assert sync.read(location.read_location()) == FilterState(search="salmon")
    assert sync.state.sort_by == SortOption.NAME
    assert sync.state.type == TypeOption.ALL


def test_reset_removes_recognized_keys() -> None:
    sync, location, _ = _sync("?search=tuna&sortBy=price&type=Roll&page=3")

    sync.reset()

    assert sync.state == FilterState()
    assert parse_query(location.read_location()) == {"page": "3"}


def test_enum_changes_commit_immediately() -> None:
    sync, location, scheduler = _sync()

    sync.set_sort_by("price")
    sync.set_type("Nigiri")

    assert parse_query(location.read_location()) == {"sortBy": "price", "type": "Nigiri"}
    assert scheduler.timers == []


def test_debounced_search_writes_once_after_quiet_period() -> None:
    sync, location, scheduler = _sync()
    seen: list[FilterState] = []
    sync.subscribe(seen.append)

    sync.set_search("s")
    scheduler.advance(0.5)
    sync.set_search("sal")
    scheduler.advance(0.5)
    sync.set_search("salmon")

    assert sync.search_input == "salmon"
    assert sync.state.search == ""
    assert location.entries == [""]

    scheduler.advance(2.0)

    assert sync.state.search == "salmon"
    assert location.entries == ["", "?search=salmon"]
    assert [state.search for state in seen] == ["salmon"]


def test_mixed_commit_only_debounces_search() -> None:
    sync, location, scheduler = _sync()

    sync.commit({"search": "ebi", "type": "Roll"}, debounce=True)

    assert parse_query(location.read_location()) == {"type": "Roll"}
    scheduler.advance(2.0)
    assert parse_query(location.read_location()) == {"search": "ebi", "type": "Roll"}


def test_reset_cancels_pending_search() -> None:
    sync, location, scheduler = _sync()

    sync.set_search("uni")
    sync.reset()
    scheduler.advance(5.0)

    assert sync.state == FilterState()
    assert sync.search_input == ""
    assert location.read_location() == ""


def test_dispose_drops_pending_search() -> None:
    sync, location, scheduler = _sync()

    sync.set_search("uni")
    sync.dispose()
    scheduler.advance(5.0)

    assert location.read_location() == ""
    assert sync.state.search == ""


def test_navigation_rereads_without_writing() -> None:
    sync, location, _ = _sync()
    seen: list[FilterState] = []
    sync.subscribe(seen.append)
    sync.set_type("Roll")
    sync.set_sort_by("price")
    entries_before = location.entries

    location.back()

    assert sync.state == FilterState(type=TypeOption.ROLL)
    assert location.entries == entries_before
    assert seen[-1] == FilterState(type=TypeOption.ROLL)


def test_navigation_with_invalid_value_falls_back() -> None:
    sync, location, _ = _sync()

    location.navigate("?type=Maki&search=kani")

    assert sync.state == FilterState(search="kani")
    assert sync.search_input == "kani"


def test_unchanged_commit_does_not_notify() -> None:
    sync, location, _ = _sync()
    seen: list[FilterState] = []
    sync.subscribe(seen.append)

    sync.commit({"sortBy": "name"})

    assert seen == []
    assert location.entries == [""]


def test_unknown_field_and_bad_value_rejected() -> None:
    sync, _, _ = _sync()

    with pytest.raises(ValueError):
        sync.commit({"page": "2"})
    with pytest.raises(pydantic.ValidationError):
        sync.commit({"type": "Maki"})
    assert sync.state == FilterState()


def test_memory_location_history() -> None:
    location = MemoryLocation()
    heard: list[str] = []
    location.on_location_change(heard.append)

    location.write_location("?a=1", push=True)
    location.write_location("?a=2", push=True)
    location.write_location("?a=3", push=False)
    assert heard == []
    assert location.entries == ["", "?a=1", "?a=3"]

    assert location.back()
    assert heard == ["?a=1"]
    location.write_location("?b=1", push=True)
    assert location.entries == ["", "?a=1", "?b=1"]
    assert not location.forward()


def test_query_helpers() -> None:
    assert parse_query("?search=a%20b&type=Roll") == {"search": "a b", "type": "Roll"}
    assert format_query({}) == ""
    assert parse_query(format_query({"search": "a&b"})) == {"search": "a&b"}
