"""Countdown: a single drift-corrected countdown from a configured duration."""

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
)
from timerdeck.core.scheduler import TickScheduler

_MAX_DURATION = 23 * 3600 + 59 * 60 + 59


@dataclass(frozen=True)
class CountdownSettings(TimerSettings):
    """Duration of the countdown in seconds, at most 23:59:59."""

    RANGES = {"duration": (1, _MAX_DURATION)}

    duration: int = 300


@dataclass(frozen=True)
class CountdownState:
    """Settings and run state of a countdown.

    ``pending`` holds settings changed while running; they replace
    ``settings`` at the next :func:`reset`.
    """

    settings: CountdownSettings
    run: RunState
    pending: CountdownSettings | None = None


@dataclass(frozen=True)
class CountdownSnapshot:
    """What a countdown shows at one instant: whole seconds left."""

    value: int
    running: bool
    status: RunStatus
    duration: int


def initial_state(settings: CountdownSettings) -> CountdownState:
    """Return an idle countdown showing the full duration."""
    return CountdownState(settings=settings, run=RunState.idle(settings.duration))


def start(state: CountdownState, now: int) -> Transition[CountdownState]:
    """Begin, resume, or (after completion) begin again from the full duration."""
    if state.run.is_running:
        return Transition(state)
    return Transition(replace(state, run=begin(state.run, state.settings.duration, now)))


def pause(state: CountdownState, now: int) -> Transition[CountdownState]:
    """Freeze the value after crossing a boundary already reached at *now*."""
    caught_up = tick(state, now)
    state = caught_up.state
    if not state.run.is_running:
        return caught_up
    return Transition(
        replace(state, run=freeze(state.run, state.settings.duration, now)),
        caught_up.events,
    )


def reset(state: CountdownState) -> Transition[CountdownState]:
    """Stop and show the full duration, applying any pending settings."""
    return Transition(initial_state(state.pending or state.settings))


def tick(state: CountdownState, now: int) -> Transition[CountdownState]:
    """Complete the run, emitting ``COMPLETE``, once the value reaches zero."""
    if not state.run.is_running:
        return Transition(state)
    if countdown_value(state.run, state.settings.duration, now) > 0:
        return Transition(state)
    return Transition(
        replace(state, run=RunState.completed()),
        (TimerEvent(EventKind.COMPLETE),),
    )


def configure(state: CountdownState, changes: Mapping[str, Any]) -> CountdownState:
    """Apply *changes* now when stopped, or hold them until the next reset."""
    settings = (state.pending or state.settings).merged(changes)
    if state.run.is_running:
        return replace(state, pending=settings)
    return CountdownState(
        settings=settings,
        run=refit(state.run, settings.duration),
    )


def snapshot(state: CountdownState, now: int) -> CountdownSnapshot:
    """Return the observable countdown at *now*."""
    return CountdownSnapshot(
        value=countdown_value(state.run, state.settings.duration, now),
        running=state.run.is_running,
        status=state.run.status,
        duration=state.settings.duration,
    )


class CountdownTimer(TimerMachine[CountdownState]):
    """Count down once from ``duration`` seconds and emit ``COMPLETE`` at zero."""

    mode = "countdown"

    def __init__(
        self,
        settings: Mapping[str, Any] | None = None,
        *,
        scheduler: TickScheduler | None = None,
        clock_fn: Callable[[], int] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        super().__init__(
            initial_state(CountdownSettings.from_mapping(settings)),
            scheduler=scheduler,
            clock_fn=clock_fn,
            on_change=on_change,
        )

    @classmethod
    def restore(cls, data: Mapping[str, Any] | None, **kwargs: Any) -> CountdownTimer:
        """Build a timer from a :meth:`persisted` mapping."""
        return cls((data or {}).get("settings"), **kwargs)

    def persisted(self) -> dict[str, Any]:
        return {"settings": (self._state.pending or self._state.settings).as_dict()}

    _start = staticmethod(start)
    _pause = staticmethod(pause)
    _reset = staticmethod(reset)
    _tick = staticmethod(tick)
    _configure = staticmethod(configure)
    _snapshot = staticmethod(snapshot)
