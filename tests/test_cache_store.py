from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sushisync.cache.store import CacheEntry, CacheStore, QueryStatus
from sushisync.keys import sushi_keys
from sushisync.models.filters import FilterState, TypeOption


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _store(clock: FakeClock | None = None, **kwargs: object) -> CacheStore:
    return CacheStore(clock=clock or FakeClock(), **kwargs)  # type: ignore[arg-type]


def test_get_or_create_starts_idle() -> None:
    store = _store()
    key = sushi_keys.list()

    entry = store.get_or_create(key)

    assert entry.status == QueryStatus.IDLE
    assert entry.data is None
    assert entry.generation == 0
    assert key in store


def test_entries_are_copies() -> None:
    store = _store()
    key = sushi_keys.list()

    entry = store.get_or_create(key)
    entry.status = QueryStatus.SUCCESS

    assert store.get_or_create(key).status == QueryStatus.IDLE


def test_out_of_order_completion_keeps_newer_generation() -> None:
    store = _store()
    key = sushi_keys.list()

    gen1 = store.begin_fetch(key)
    gen2 = store.begin_fetch(key)
    assert gen2 == gen1 + 1

    assert store.resolve(key, gen2, ["new"]) is True
    assert store.resolve(key, gen1, ["old"]) is False

    entry = store.get_or_create(key)
    assert entry.data == ["new"]
    assert entry.status == QueryStatus.SUCCESS


def test_stale_reject_is_discarded() -> None:
    store = _store()
    key = sushi_keys.detail("1")

    gen1 = store.begin_fetch(key)
    gen2 = store.begin_fetch(key)
    store.resolve(key, gen2, {"id": "1"})

    assert store.reject(key, gen1, RuntimeError("late")) is False
    assert store.get_or_create(key).status == QueryStatus.SUCCESS


def test_reject_keeps_last_good_data() -> None:
    clock = FakeClock()
    store = _store(clock)
    key = sushi_keys.list()

    store.resolve(key, store.begin_fetch(key), ["D"])
    fetched_at = store.get_or_create(key).fetched_at
    clock.advance(seconds=5)
    error = RuntimeError("boom")
    store.reject(key, store.begin_fetch(key), error)

    entry = store.get_or_create(key)
    assert entry.status == QueryStatus.ERROR
    assert entry.data == ["D"]
    assert entry.error is error
    assert entry.fetched_at == fetched_at


def test_abandon_restores_previous_status() -> None:
    store = _store()
    key = sushi_keys.list()
    store.resolve(key, store.begin_fetch(key), ["D"])

    generation = store.begin_fetch(key)
    assert store.abandon(key, generation) is True

    entry = store.get_or_create(key)
    assert entry.status == QueryStatus.SUCCESS
    assert entry.data == ["D"]
    assert entry.error is None


def test_listeners_see_transitions_until_unsubscribed() -> None:
    store = _store()
    key = sushi_keys.list()
    seen: list[QueryStatus] = []

    unsubscribe = store.subscribe(key, lambda entry: seen.append(entry.status))
    assert store.subscriber_count(key) == 1

    store.resolve(key, store.begin_fetch(key), [])
    unsubscribe()
    unsubscribe()
    store.begin_fetch(key)

    assert seen == [QueryStatus.LOADING, QueryStatus.SUCCESS]
    assert store.subscriber_count(key) == 0


def test_failing_listener_does_not_block_others() -> None:
    store = _store()
    key = sushi_keys.list()
    seen: list[CacheEntry] = []

    def broken(_entry: CacheEntry) -> None:
        raise RuntimeError("listener bug")

    store.subscribe(key, broken)
    store.subscribe(key, seen.append)
    store.begin_fetch(key)

    assert len(seen) == 1


def test_staleness_window() -> None:
    clock = FakeClock()
    store = _store(clock, stale_after=timedelta(minutes=3))
    key = sushi_keys.list()

    assert store.is_stale(key)
    store.resolve(key, store.begin_fetch(key), [])
    assert not store.is_stale(key)

    clock.advance(minutes=2, seconds=59)
    assert not store.is_stale(key)
    clock.advance(seconds=1)
    assert store.is_stale(key)


def test_invalidate_marks_only_matching_keys() -> None:
    store = _store()
    a = sushi_keys.list(FilterState(search="a"))
    b = sushi_keys.detail("b")
    for key in (a, b):
        store.resolve(key, store.begin_fetch(key), [])

    marked = store.invalidate(a)

    assert marked == [a]
    assert store.is_stale(a)
    assert not store.is_stale(b)


def test_invalidate_prefix_refetches_observed_entries_only() -> None:
    refetched = []
    store = _store(on_refetch=refetched.append)
    observed = sushi_keys.list()
    unobserved = sushi_keys.list(FilterState(type=TypeOption.ROLL))
    detail = sushi_keys.detail("1")
    for key in (observed, unobserved, detail):
        store.resolve(key, store.begin_fetch(key), [])
    store.subscribe(observed, lambda _entry: None)

    marked = store.invalidate(sushi_keys.lists())

    assert set(marked) == {observed, unobserved}
    assert refetched == [observed]
    assert not store.is_stale(detail)


def test_resolve_clears_invalidation() -> None:
    store = _store()
    key = sushi_keys.list()
    store.resolve(key, store.begin_fetch(key), [])
    store.invalidate(sushi_keys.all())

    store.resolve(key, store.begin_fetch(key), [1])

    assert not store.is_stale(key)


def test_sweep_removes_idle_unobserved_entries() -> None:
    clock = FakeClock()
    store = _store(clock, gc_idle=timedelta(minutes=5))
    idle = sushi_keys.list()
    watched = sushi_keys.detail("1")
    for key in (idle, watched):
        store.resolve(key, store.begin_fetch(key), [])
    store.subscribe(watched, lambda _entry: None)

    clock.advance(minutes=4)
    assert store.sweep() == []

    clock.advance(minutes=1)
    assert store.sweep() == [idle]
    assert idle not in store
    assert watched in store

    clock.advance(hours=1)
    store.sweep()
    assert watched in store


def test_sweep_counts_idle_time_from_last_unsubscribe() -> None:
    clock = FakeClock()
    store = _store(clock, gc_idle=timedelta(minutes=5))
    key = sushi_keys.list()
    store.resolve(key, store.begin_fetch(key), [])
    unsubscribe = store.subscribe(key, lambda _entry: None)

    clock.advance(minutes=10)
    unsubscribe()
    clock.advance(minutes=4)
    assert store.sweep() == []

    clock.advance(minutes=1)
    assert store.sweep() == [key]


def test_sweep_skips_loading_entries() -> None:
    clock = FakeClock()
    store = _store(clock, gc_idle=timedelta(minutes=5))
    key = sushi_keys.list()
    store.begin_fetch(key)

    clock.advance(minutes=30)

    assert store.sweep() == []
