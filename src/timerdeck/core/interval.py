"""Interval: alternate segments A and B for a fixed number of rounds."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

from timerdeck.core.machine import (
    ChangeCallback,
    EventKind,
    RunState,
    RunStatus,
    TimerEvent,
    TimerMachine,
    TimerSettings,
    Transition,
    begin,
    countdown_value,
    freeze,
    refit,
    segment_end,
)
from timerdeck.core.scheduler import TickScheduler

LABEL_A = "A"
LABEL_B = "B"


@dataclass(frozen=True)
class IntervalSettings(TimerSettings):
    """Lengths of segments A and B in seconds and the number of rounds."""

    RANGES = {
        "duration_a": (1, 600),
        "duration_b": (1, 600),
        "total_rounds": (1, 50),
    }

    duration_a: int = 30
    duration_b: int = 10
    total_rounds: int = 8

    def duration_for(self, label: str) -> int:
        return self.duration_a if label == LABEL_A else self.duration_b


@dataclass(frozen=True)
class IntervalState:
    """Current label, 1-based round and run state."""

    settings: IntervalSettings
    label: str
    round: int
    run: RunState
    pending: IntervalSettings | None = None

    @property
    def duration(self) -> int:
        return self.settings.duration_for(self.label)


@dataclass(frozen=True)
class IntervalSnapshot:
    """What an interval timer shows at one instant."""

    value: int
    running: bool
    status: RunStatus
    label: str
    round: int
    total_rounds: int
    duration: int


def initial_state(settings: IntervalSettings) -> IntervalState:
    """Return an idle segment A in round 1."""
    return IntervalState(
        settings=settings,
        label=LABEL_A,
        round=1,
        run=RunState.idle(settings.duration_a),
    )


def advance(state: IntervalState) -> tuple[IntervalState, tuple[TimerEvent, ...]]:
    """Move past the current segment.

    Completing B in the last round finishes the cycle: the returned state is
    ``COMPLETED``.  Otherwise the run state is left for the caller to
    re-anchor.
    """
    finished = TimerEvent(EventKind.SEGMENT_COMPLETE, state.label)
    settings = state.pending or state.settings
    if state.label == LABEL_A:
        return replace(state, settings=settings, label=LABEL_B, pending=None), (finished,)
    if state.round < settings.total_rounds:
        advanced = replace(state, settings=settings, label=LABEL_A, round=state.round + 1, pending=None)
        return advanced, (finished,)
    done = replace(state, settings=settings, pending=None, run=RunState.completed())
    return done, (finished, TimerEvent(EventKind.CYCLE_COMPLETE))


def start(state: IntervalState, now: int) -> Transition[IntervalState]:
    """Begin or resume; a finished cycle starts over from round 1."""
    if state.run.is_running:
        return Transition(state)
    if state.run.status is RunStatus.COMPLETED:
        state = initial_state(state.settings)
    return Transition(replace(state, run=begin(state.run, state.duration, now)))


def pause(state: IntervalState, now: int) -> Transition[IntervalState]:
    """Freeze the current segment after crossing any boundary reached by *now*."""
    caught_up = tick(state, now)
    state = caught_up.state
    if not state.run.is_running:
        return caught_up
    return Transition(replace(state, run=freeze(state.run, state.duration, now)), caught_up.events)


def reset(state: IntervalState) -> Transition[IntervalState]:
    """Return to an idle A in round 1, applying any pending settings."""
    return Transition(initial_state(state.pending or state.settings))


def tick(state: IntervalState, now: int) -> Transition[IntervalState]:
    """Cross every segment boundary reached by *now*.

    Each segment is anchored where the previous one ended.  Crossing B of
    the last round completes the cycle and stops the loop.
    """
    events: list[TimerEvent] = []
    while True:
        boundary = segment_end(state.run, state.duration)
        if boundary is None or now < boundary:
            break
        state, produced = advance(state)
        events.extend(produced)
        if state.run.status is not RunStatus.COMPLETED:
            state = replace(state, run=RunState.running(boundary))
    return Transition(state, tuple(events))


def skip(state: IntervalState, now: int) -> Transition[IntervalState]:
    """Advance now regardless of the time left.  A no-op once the cycle is done.

    A boundary already reached at *now* stands in for the skip.
    """
    caught_up = tick(state, now)
    state = caught_up.state
    if caught_up.events or state.run.status is RunStatus.COMPLETED:
        return caught_up
    was_running = state.run.is_running
    state, produced = advance(state)
    if state.run.status is not RunStatus.COMPLETED:
        run = RunState.running(now) if was_running else RunState.idle(state.duration)
        state = replace(state, run=run)
    return Transition(state, produced)


def configure(state: IntervalState, changes: Mapping[str, Any]) -> IntervalState:
    """Apply *changes* now when stopped, or at the next boundary when running.

    Lowering ``total_rounds`` while stopped pulls the current round down
    with it.
    """
    settings = (state.pending or state.settings).merged(changes)
    if state.run.is_running:
        return replace(state, pending=settings)
    return replace(
        state,
        settings=settings,
        pending=None,
        round=min(state.round, settings.total_rounds),
        run=refit(state.run, settings.duration_for(state.label)),
    )


def snapshot(state: IntervalState, now: int) -> IntervalSnapshot:
    return IntervalSnapshot(
        value=countdown_value(state.run, state.duration, now),
        running=state.run.is_running,
        status=state.run.status,
        label=state.label,
        round=state.round,
        total_rounds=state.settings.total_rounds,
        duration=state.duration,
    )


class IntervalTimer(TimerMachine[IntervalState]):
    """Run ``total_rounds`` rounds of A then B and emit ``CYCLE_COMPLETE`` at the end."""

    mode = "interval"

    def __init__(
        self,
        settings: Mapping[str, Any] | None = None,
        *,
        scheduler: TickScheduler | None = None,
        clock_fn: Callable[[], int] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        super().__init__(
            initial_state(IntervalSettings.from_mapping(settings)),
            scheduler=scheduler,
            clock_fn=clock_fn,
            on_change=on_change,
        )

    @classmethod
    def restore(cls, data: Mapping[str, Any] | None, **kwargs: Any) -> IntervalTimer:
        return cls((data or {}).get("settings"), **kwargs)

    def persisted(self) -> dict[str, Any]:
        return {"settings": (self._state.pending or self._state.settings).as_dict()}

    def skip(self, now: int | None = None) -> None:
        self._apply(skip(self._state, self._now(now)))

    _start = staticmethod(start)
    _pause = staticmethod(pause)
    _reset = staticmethod(reset)
    _tick = staticmethod(tick)
    _configure = staticmethod(configure)
    _snapshot = staticmethod(snapshot)
