"""Tests for the cooperative tick scheduler."""

import pytest

from timerdeck.core.countdown import CountdownTimer
from timerdeck.core.scheduler import TickScheduler
from timerdeck.core.stopwatch import Stopwatch

from .conftest import FakeLoop


class TestSubscribe:
    """subscribe() registers a callback that fires once per period."""

    def test_fires_one_period_after_subscribing(self, loop: FakeLoop) -> None:
        calls: list[int] = []
        loop.scheduler.subscribe(100, lambda: calls.append(loop.now))

        assert loop.scheduler.run_pending() == 0
        loop.advance(350)

        assert calls == [100, 200, 300]

    def test_rejects_non_positive_period(self, loop: FakeLoop) -> None:
        with pytest.raises(ValueError):
            loop.scheduler.subscribe(0, lambda: None)

    def test_active_tracks_subscriptions(self, loop: FakeLoop) -> None:
        assert loop.scheduler.active is False
        sub = loop.scheduler.subscribe(10, lambda: None)
        assert loop.scheduler.active is True
        sub.cancel()
        assert loop.scheduler.active is False
        assert loop.scheduler.next_due() is None


class TestCancel:
    """A cancelled subscription never fires again."""

    def test_cancelled_callback_does_not_fire(self, loop: FakeLoop) -> None:
        calls: list[int] = []
        sub = loop.scheduler.subscribe(100, lambda: calls.append(loop.now))
        loop.advance(100)
        sub.cancel()
        loop.advance(1_000)
        assert calls == [100]

    def test_cancel_from_another_callback_in_same_pass(self, loop: FakeLoop) -> None:
        calls: list[str] = []
        second = None

        def first() -> None:
            calls.append("first")
            assert second is not None
            second.cancel()

        loop.scheduler.subscribe(100, first)
        second = loop.scheduler.subscribe(100, lambda: calls.append("second"))
        loop.advance(100)

        assert calls == ["first"]

    def test_cancel_twice_is_harmless(self, loop: FakeLoop) -> None:
        sub = loop.scheduler.subscribe(100, lambda: None)
        sub.cancel()
        loop.scheduler.cancel(sub)
        assert sub.active is False


class TestRunPending:
    """run_pending() coalesces missed beats instead of replaying them."""

    def test_late_call_fires_once(self) -> None:
        scheduler = TickScheduler(clock_fn=lambda: 0)
        calls: list[None] = []
        sub = scheduler.subscribe(100, lambda: calls.append(None))

        assert scheduler.run_pending(now=1_050) == 1
        assert calls == [None]
        assert sub.next_due == 1_100


class TestRun:
    """run() sleeps until the next due time and stops when idle."""

    def test_returns_when_last_subscription_cancels(self, loop: FakeLoop) -> None:
        calls: list[int] = []

        def callback() -> None:
            calls.append(loop.now)
            if len(calls) == 3:
                sub.cancel()

        sub = loop.scheduler.subscribe(100, callback)
        loop.scheduler.run()

        assert calls == [100, 200, 300]
        assert loop.now == 300

    def test_until_stops_the_loop(self, loop: FakeLoop) -> None:
        loop.scheduler.subscribe(100, lambda: None)
        loop.scheduler.run(until=lambda: loop.now >= 500)
        assert loop.now == 500
        assert loop.scheduler.active is True


class TestMachineSubscriptions:
    """Timers hold a subscription only while running."""

    def test_countdown_subscribes_at_100_ms(self, loop: FakeLoop) -> None:
        timer = CountdownTimer({"duration": 5}, scheduler=loop.scheduler, clock_fn=loop.clock)
        timer.start()
        assert loop.scheduler.next_due() == 100

    def test_stopwatch_subscribes_at_10_ms(self, loop: FakeLoop) -> None:
        watch = Stopwatch(scheduler=loop.scheduler, clock_fn=loop.clock)
        watch.start()
        assert loop.scheduler.next_due() == 10

    def test_pause_and_reset_cancel_subscription(self, loop: FakeLoop) -> None:
        timer = CountdownTimer({"duration": 5}, scheduler=loop.scheduler, clock_fn=loop.clock)
        timer.start()
        timer.pause()
        assert loop.scheduler.active is False

        timer.start()
        assert loop.scheduler.active is True
        timer.reset()
        assert loop.scheduler.active is False

    def test_start_twice_keeps_single_subscription(self, loop: FakeLoop) -> None:
        calls: list[object] = []
        timer = CountdownTimer({"duration": 5}, scheduler=loop.scheduler, clock_fn=loop.clock)
        timer.start()
        timer.start()
        loop.scheduler.subscribe(100, lambda: calls.append(None))
        assert loop.scheduler.run_pending(now=100) == 2

    def test_completion_cancels_subscription(self, loop: FakeLoop) -> None:
        timer = CountdownTimer({"duration": 1}, scheduler=loop.scheduler, clock_fn=loop.clock)
        timer.start()
        loop.advance(1_000)
        assert timer.running is False
        assert loop.scheduler.active is False

    def test_close_drops_subscription(self, loop: FakeLoop) -> None:
        timer = CountdownTimer({"duration": 5}, scheduler=loop.scheduler, clock_fn=loop.clock)
        timer.start()
        timer.close()
        assert loop.scheduler.active is False
