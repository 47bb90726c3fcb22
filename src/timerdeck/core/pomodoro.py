"""Pomodoro: work segments separated by short and long breaks.

After a work segment completes the completed-work counter goes up; every
``long_break_interval``-th work segment is followed by a long break, the
others by a short one.  Any break is followed by work.  Skipping a segment
follows exactly the same rule.
"""

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

WORK = "work"
SHORT_BREAK = "short_break"
LONG_BREAK = "long_break"

SEGMENTS = (WORK, SHORT_BREAK, LONG_BREAK)


@dataclass(frozen=True)
class PomodoroSettings(TimerSettings):
    """Segment lengths in seconds and how often a long break comes round."""

    RANGES = {
        "work_duration": (60, 3600),
        "short_break_duration": (60, 1800),
        "long_break_duration": (60, 3600),
        "long_break_interval": (1, 10),
    }

    work_duration: int = 25 * 60
    short_break_duration: int = 5 * 60
    long_break_duration: int = 15 * 60
    long_break_interval: int = 4

    def duration_for(self, segment: str) -> int:
        if segment == WORK:
            return self.work_duration
        if segment == SHORT_BREAK:
            return self.short_break_duration
        if segment == LONG_BREAK:
            return self.long_break_duration
        raise ValueError(f"unknown segment {segment!r}")


@dataclass(frozen=True)
class PomodoroState:
    """Current segment, completed-work count and run state."""

    settings: PomodoroSettings
    segment: str
    completed_count: int
    run: RunState
    pending: PomodoroSettings | None = None

    @property
    def duration(self) -> int:
        return self.settings.duration_for(self.segment)


@dataclass(frozen=True)
class PomodoroSnapshot:
    """What a Pomodoro timer shows at one instant."""

    value: int
    running: bool
    status: RunStatus
    segment: str
    completed_count: int
    duration: int


def initial_state(settings: PomodoroSettings, completed_count: int = 0) -> PomodoroState:
    """Return an idle work segment carrying *completed_count* over."""
    return PomodoroState(
        settings=settings,
        segment=WORK,
        completed_count=completed_count,
        run=RunState.idle(settings.work_duration),
    )


def next_segment(state: PomodoroState) -> tuple[PomodoroState, TimerEvent]:
    """Move past the current segment, returning the new state and its event.

    Pending settings take effect here.  The run state is left for the caller
    to re-anchor.
    """
    settings = state.pending or state.settings
    completed = state.completed_count
    if state.segment == WORK:
        completed += 1
        following = LONG_BREAK if completed % settings.long_break_interval == 0 else SHORT_BREAK
    else:
        following = WORK
    advanced = replace(
        state,
        settings=settings,
        segment=following,
        completed_count=completed,
        pending=None,
    )
    return advanced, TimerEvent(EventKind.SEGMENT_COMPLETE, state.segment)


def start(state: PomodoroState, now: int) -> Transition[PomodoroState]:
    """Begin or resume the current segment."""
    if state.run.is_running:
        return Transition(state)
    return Transition(replace(state, run=begin(state.run, state.duration, now)))


def pause(state: PomodoroState, now: int) -> Transition[PomodoroState]:
    """Freeze the current segment after crossing any boundary reached by *now*."""
    caught_up = tick(state, now)
    state = caught_up.state
    if not state.run.is_running:
        return caught_up
    return Transition(replace(state, run=freeze(state.run, state.duration, now)), caught_up.events)


def reset(state: PomodoroState) -> Transition[PomodoroState]:
    """Return to an idle work segment and clear the completed count."""
    return Transition(initial_state(state.pending or state.settings))


def tick(state: PomodoroState, now: int) -> Transition[PomodoroState]:
    """Cross every segment boundary reached by *now*.

    Each new segment is anchored at the instant the previous one ended, so
    a late tick loses no time.
    """
    events: list[TimerEvent] = []
    while True:
        boundary = segment_end(state.run, state.duration)
        if boundary is None or now < boundary:
            break
        state, event = next_segment(state)
        state = replace(state, run=RunState.running(boundary))
        events.append(event)
    return Transition(state, tuple(events))


def skip(state: PomodoroState, now: int) -> Transition[PomodoroState]:
    """End the current segment early, exactly as if it had run out.

    A boundary already reached at *now* counts as the skipped segment, so
    one skip never advances more than one segment.
    """
    caught_up = tick(state, now)
    if caught_up.events:
        return caught_up
    state, event = next_segment(caught_up.state)
    if state.run.is_running:
        run = RunState.running(now)
    else:
        run = RunState.idle(state.duration)
    return Transition(replace(state, run=run), (event,))


def configure(state: PomodoroState, changes: Mapping[str, Any]) -> PomodoroState:
    """Apply *changes* now when stopped, or at the next boundary when running."""
    settings = (state.pending or state.settings).merged(changes)
    if state.run.is_running:
        return replace(state, pending=settings)
    return replace(
        state,
        settings=settings,
        pending=None,
        run=refit(state.run, settings.duration_for(state.segment)),
    )


def snapshot(state: PomodoroState, now: int) -> PomodoroSnapshot:
    return PomodoroSnapshot(
        value=countdown_value(state.run, state.duration, now),
        running=state.run.is_running,
        status=state.run.status,
        segment=state.segment,
        completed_count=state.completed_count,
        duration=state.duration,
    )


class PomodoroTimer(TimerMachine[PomodoroState]):
    """Cycle work and break segments, emitting ``SEGMENT_COMPLETE`` for each."""

    mode = "pomodoro"

    def __init__(
        self,
        settings: Mapping[str, Any] | None = None,
        *,
        completed_count: int = 0,
        scheduler: TickScheduler | None = None,
        clock_fn: Callable[[], int] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        super().__init__(
            initial_state(PomodoroSettings.from_mapping(settings), max(0, int(completed_count))),
            scheduler=scheduler,
            clock_fn=clock_fn,
            on_change=on_change,
        )

    @classmethod
    def restore(cls, data: Mapping[str, Any] | None, **kwargs: Any) -> PomodoroTimer:
        data = data or {}
        return cls(data.get("settings"), completed_count=data.get("completed_count", 0), **kwargs)

    def persisted(self) -> dict[str, Any]:
        return {
            "settings": (self._state.pending or self._state.settings).as_dict(),
            "completed_count": self._state.completed_count,
        }

    def skip(self, now: int | None = None) -> None:
        self._apply(skip(self._state, self._now(now)))

    _start = staticmethod(start)
    _pause = staticmethod(pause)
    _reset = staticmethod(reset)
    _tick = staticmethod(tick)
    _configure = staticmethod(configure)
    _snapshot = staticmethod(snapshot)
