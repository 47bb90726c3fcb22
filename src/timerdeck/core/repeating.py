"""Repeating: one duration run back to back, a fixed number of times or forever."""

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


@dataclass(frozen=True)
class RepeatingSettings(TimerSettings):
    """Length of one repetition, how many to run, and whether to run forever."""

    RANGES = {
        "duration": (1, 59 * 60 + 59),
        "repeat_count": (1, 100),
    }

    duration: int = 60
    repeat_count: int = 5
    infinite: bool = False


@dataclass(frozen=True)
class RepeatingState:
    """Settings, repetitions completed so far and run state."""

    settings: RepeatingSettings
    completed_count: int
    run: RunState
    pending: RepeatingSettings | None = None

    @property
    def finished(self) -> bool:
        settings = self.settings
        return not settings.infinite and self.completed_count >= settings.repeat_count


@dataclass(frozen=True)
class RepeatingSnapshot:
    """What a repeating timer shows at one instant."""

    value: int
    running: bool
    status: RunStatus
    completed_count: int
    repeat_count: int
    infinite: bool
    duration: int


def initial_state(settings: RepeatingSettings) -> RepeatingState:
    """Return an idle first repetition with nothing completed."""
    return RepeatingState(settings=settings, completed_count=0, run=RunState.idle(settings.duration))


def start(state: RepeatingState, now: int) -> Transition[RepeatingState]:
    """Begin or resume; a finished series starts over from zero."""
    if state.run.is_running:
        return Transition(state)
    if state.run.status is RunStatus.COMPLETED:
        state = initial_state(state.settings)
    return Transition(replace(state, run=begin(state.run, state.settings.duration, now)))


def pause(state: RepeatingState, now: int) -> Transition[RepeatingState]:
    """Freeze the current repetition after counting any that ended by *now*."""
    caught_up = tick(state, now)
    state = caught_up.state
    if not state.run.is_running:
        return caught_up
    return Transition(
        replace(state, run=freeze(state.run, state.settings.duration, now)),
        caught_up.events,
    )


def reset(state: RepeatingState) -> Transition[RepeatingState]:
    """Stop and clear the count, applying any pending settings."""
    return Transition(initial_state(state.pending or state.settings))


def tick(state: RepeatingState, now: int) -> Transition[RepeatingState]:
    """Count every repetition finished by *now*; stop once the target is reached."""
    events: list[TimerEvent] = []
    while True:
        boundary = segment_end(state.run, state.settings.duration)
        if boundary is None or now < boundary:
            break
        state = replace(
            state,
            settings=state.pending or state.settings,
            completed_count=state.completed_count + 1,
            pending=None,
        )
        events.append(TimerEvent(EventKind.CYCLE_COMPLETE))
        if state.finished:
            state = replace(state, run=RunState.completed())
            events.append(TimerEvent(EventKind.COMPLETE))
        else:
            state = replace(state, run=RunState.running(boundary))
    return Transition(state, tuple(events))


def configure(state: RepeatingState, changes: Mapping[str, Any]) -> RepeatingState:
    """Apply *changes* now when stopped, or at the next repetition when running."""
    settings = (state.pending or state.settings).merged(changes)
    if state.run.is_running:
        return replace(state, pending=settings)
    return replace(
        state,
        settings=settings,
        pending=None,
        run=refit(state.run, settings.duration),
    )


def snapshot(state: RepeatingState, now: int) -> RepeatingSnapshot:
    return RepeatingSnapshot(
        value=countdown_value(state.run, state.settings.duration, now),
        running=state.run.is_running,
        status=state.run.status,
        completed_count=state.completed_count,
        repeat_count=state.settings.repeat_count,
        infinite=state.settings.infinite,
        duration=state.settings.duration,
    )


class RepeatingTimer(TimerMachine[RepeatingState]):
    """Repeat ``duration`` seconds, emitting ``CYCLE_COMPLETE`` per repetition.

    In finite mode the last repetition also emits ``COMPLETE`` and stops the
    timer; in infinite mode only :meth:`pause` or :meth:`reset` stop it.
    """

    mode = "repeating"

    def __init__(
        self,
        settings: Mapping[str, Any] | None = None,
        *,
        scheduler: TickScheduler | None = None,
        clock_fn: Callable[[], int] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        super().__init__(
            initial_state(RepeatingSettings.from_mapping(settings)),
            scheduler=scheduler,
            clock_fn=clock_fn,
            on_change=on_change,
        )

    @classmethod
    def restore(cls, data: Mapping[str, Any] | None, **kwargs: Any) -> RepeatingTimer:
        return cls((data or {}).get("settings"), **kwargs)

    def persisted(self) -> dict[str, Any]:
        return {"settings": (self._state.pending or self._state.settings).as_dict()}

    _start = staticmethod(start)
    _pause = staticmethod(pause)
    _reset = staticmethod(reset)
    _tick = staticmethod(tick)
    _configure = staticmethod(configure)
    _snapshot = staticmethod(snapshot)
