"""Stopwatch: counts elapsed milliseconds up from zero and records laps."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable

from timerdeck.core import clock
from timerdeck.core.machine import RunState, RunStatus, TimerMachine, Transition
from timerdeck.core.scheduler import TickScheduler


@dataclass(frozen=True)
class StopwatchState:
    """Run state in milliseconds plus recorded laps, newest first."""

    run: RunState
    laps: tuple[int, ...] = ()


@dataclass(frozen=True)
class StopwatchSnapshot:
    """What a stopwatch shows at one instant."""

    value: int
    running: bool
    status: RunStatus
    laps: tuple[int, ...]


def initial_state() -> StopwatchState:
    return StopwatchState(run=RunState.idle(0))


def elapsed(state: StopwatchState, now: int) -> int:
    """Return the milliseconds counted so far."""
    if state.run.anchor is not None:
        return clock.elapsed_ms(now, state.run.anchor)
    return state.run.frozen or 0


def start(state: StopwatchState, now: int) -> Transition[StopwatchState]:
    """Begin counting, or continue from the paused value."""
    if state.run.is_running:
        return Transition(state)
    return Transition(replace(state, run=RunState.running(now - elapsed(state, now))))


def pause(state: StopwatchState, now: int) -> Transition[StopwatchState]:
    if not state.run.is_running:
        return Transition(state)
    return Transition(replace(state, run=RunState.paused(elapsed(state, now))))


def reset(state: StopwatchState) -> Transition[StopwatchState]:
    """Stop at zero and drop the laps."""
    return Transition(initial_state())


def tick(state: StopwatchState, now: int) -> Transition[StopwatchState]:
    """A stopwatch has no boundaries to cross."""
    return Transition(state)


def record_lap(state: StopwatchState, now: int) -> Transition[StopwatchState]:
    """Prepend the current elapsed time to the laps, newest first."""
    return Transition(replace(state, laps=(elapsed(state, now),) + state.laps))


def snapshot(state: StopwatchState, now: int) -> StopwatchSnapshot:
    return StopwatchSnapshot(
        value=elapsed(state, now),
        running=state.run.is_running,
        status=state.run.status,
        laps=state.laps,
    )


class Stopwatch(TimerMachine[StopwatchState]):
    """Count up in milliseconds; ticks every 10 ms while running."""

    mode = "stopwatch"
    tick_interval_ms = 10

    def __init__(
        self,
        *,
        scheduler: TickScheduler | None = None,
        clock_fn: Callable[[], int] | None = None,
    ) -> None:
        super().__init__(initial_state(), scheduler=scheduler, clock_fn=clock_fn)

    @property
    def laps(self) -> tuple[int, ...]:
        return self._state.laps

    def record_lap(self, now: int | None = None) -> int:
        """Record a lap and return its elapsed milliseconds."""
        self._apply(record_lap(self._state, self._now(now)))
        return self._state.laps[0]

    def update_settings(self, **changes: Any) -> None:
        """The stopwatch has nothing to configure."""

    _start = staticmethod(start)
    _pause = staticmethod(pause)
    _reset = staticmethod(reset)
    _tick = staticmethod(tick)
    _snapshot = staticmethod(snapshot)
