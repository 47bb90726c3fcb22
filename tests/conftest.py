"""Shared fixtures: a hand-driven clock/scheduler pair and a fake ``time`` module."""

from __future__ import annotations

from typing import Iterator
from unittest.mock import patch

import pytest

from timerdeck.core.machine import TimerEvent
from timerdeck.core.scheduler import TickScheduler


class FakeLoop:
    """A millisecond clock plus a scheduler that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self.now = start
        self.scheduler = TickScheduler(clock_fn=self.clock, sleep_fn=self.sleep)

    def clock(self) -> int:
        return self.now

    def sleep(self, milliseconds: int) -> None:
        self.now += max(0, milliseconds)

    def advance(self, milliseconds: int) -> None:
        """Move the clock forward, firing every callback that comes due on the way."""
        target = self.now + milliseconds
        while True:
            due = self.scheduler.next_due()
            if due is None or due > target:
                break
            self.now = due
            self.scheduler.run_pending()
        self.now = target


class FakeTime:
    """Stand-in for the ``time`` module where ``sleep`` advances ``monotonic``.

    With *interrupt_at* set, the sleep that would pass that instant stops
    there and raises ``KeyboardInterrupt``, as Ctrl-C would.
    """

    def __init__(self, start: float = 1000.0, interrupt_at: float | None = None) -> None:
        self.now = start
        self.interrupt_at = interrupt_at

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        if self.interrupt_at is not None and self.now + seconds >= self.interrupt_at:
            self.now = self.interrupt_at
            raise KeyboardInterrupt
        self.now += seconds


@pytest.fixture()
def loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture()
def fake_time() -> Iterator[FakeTime]:
    """Patch the clock module's ``time`` with a :class:`FakeTime` at 1000 s."""
    fake = FakeTime()
    with patch("timerdeck.core.clock.time", fake):
        yield fake


@pytest.fixture()
def events() -> list[TimerEvent]:
    """A list to pass to ``add_listener(events.append)``."""
    return []
