from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import pytest

from sushisync.debounce import DebounceBuffer


@dataclass
class _Timer:
    when: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timers fire only when the test advances time."""

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


def test_trailing_edge_commits_last_value_once() -> None:
    scheduler = ManualScheduler()
    buffer: DebounceBuffer[str] = DebounceBuffer(2000, "", scheduler=scheduler)
    calls: list[tuple[float, str]] = []

    def commit(value: str) -> None:
        calls.append((scheduler.now, value))

    buffer.schedule("v1", commit)
    scheduler.advance(0.1)
    buffer.schedule("v2", commit)

    scheduler.advance(1.999)
    assert calls == []

    scheduler.advance(0.001)
    assert calls == [(2.1, "v2")]

    scheduler.advance(10)
    assert len(calls) == 1


def test_local_value_updates_immediately() -> None:
    scheduler = ManualScheduler()
    buffer: DebounceBuffer[str] = DebounceBuffer(500, "", scheduler=scheduler)

    buffer.schedule("sal", lambda _v: None)

    assert buffer.local_value == "sal"
    assert buffer.pending


def test_dispose_drops_pending_commit() -> None:
    scheduler = ManualScheduler()
    buffer: DebounceBuffer[str] = DebounceBuffer(2000, "", scheduler=scheduler)
    calls: list[str] = []

    buffer.schedule("v1", calls.append)
    scheduler.advance(1.0)
    buffer.dispose()
    scheduler.advance(5.0)

    assert calls == []
    assert not buffer.pending


def test_schedule_after_dispose_never_commits() -> None:
    scheduler = ManualScheduler()
    buffer: DebounceBuffer[str] = DebounceBuffer(100, "", scheduler=scheduler)
    calls: list[str] = []

    buffer.dispose()
    buffer.schedule("late", calls.append)
    scheduler.advance(1.0)

    assert calls == []
    assert buffer.local_value == "late"


def test_cancel_keeps_buffer_usable() -> None:
    scheduler = ManualScheduler()
    buffer: DebounceBuffer[str] = DebounceBuffer(100, "", scheduler=scheduler)
    calls: list[str] = []

    buffer.schedule("a", calls.append)
    buffer.cancel()
    scheduler.advance(1.0)
    buffer.schedule("b", calls.append)
    scheduler.advance(0.1)

    assert calls == ["b"]


def test_negative_delay_rejected() -> None:
    with pytest.raises(ValueError):
        DebounceBuffer(-1, "")


@pytest.mark.asyncio
async def test_loop_scheduler_fires_on_running_loop() -> None:
    buffer: DebounceBuffer[int] = DebounceBuffer(10, 0)
    fired = asyncio.Event()
    seen: list[int] = []

    def commit(value: int) -> None:
        seen.append(value)
        fired.set()

    buffer.schedule(1, commit)
    buffer.schedule(2, commit)
    await asyncio.wait_for(fired.wait(), timeout=1.0)

    assert seen == [2]
