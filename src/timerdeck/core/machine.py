"""Shared building blocks for the timer state machines.

Every mode is a frozen state dataclass plus pure transition functions that
return a :class:`Transition`.  :class:`TimerMachine` wraps one of those
states, keeps a tick subscription alive while the timer runs and hands the
events each transition produced to the registered listeners.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, ClassVar, Generic, Mapping, TypeVar

from timerdeck.core import clock
from timerdeck.core.scheduler import Subscription, TickScheduler

logger = logging.getLogger(__name__)

S = TypeVar("S")
T = TypeVar("T", bound="TimerSettings")


class RunStatus(Enum):
    """Possible run states of a timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class EventKind(Enum):
    """Boundary events emitted by the timers."""

    SEGMENT_COMPLETE = "segment_complete"
    CYCLE_COMPLETE = "cycle_complete"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TimerEvent:
    kind: EventKind
    segment: str | None = None


@dataclass(frozen=True)
class RunState:
    """Anchor/frozen pair describing whether a timer is counting.

    A running timer is anchored to the clock and has no frozen value; an idle
    or paused one is frozen and has no anchor.  A completed timer has
    neither.
    """

    status: RunStatus
    anchor: int | None = None
    frozen: int | None = None

    def __post_init__(self) -> None:
        if self.status is RunStatus.RUNNING:
            valid = self.anchor is not None and self.frozen is None
        elif self.status is RunStatus.COMPLETED:
            valid = self.anchor is None and self.frozen is None
        else:
            valid = self.anchor is None and self.frozen is not None
        if not valid:
            raise ValueError(
                f"inconsistent run state: {self.status.value} with "
                f"anchor={self.anchor!r}, frozen={self.frozen!r}"
            )

    @classmethod
    def idle(cls, value: int) -> RunState:
        return cls(RunStatus.IDLE, frozen=value)

    @classmethod
    def running(cls, anchor: int) -> RunState:
        return cls(RunStatus.RUNNING, anchor=anchor)

    @classmethod
    def paused(cls, value: int) -> RunState:
        return cls(RunStatus.PAUSED, frozen=value)

    @classmethod
    def completed(cls) -> RunState:
        return cls(RunStatus.COMPLETED)

    @property
    def is_running(self) -> bool:
        return self.status is RunStatus.RUNNING


@dataclass(frozen=True)
class Transition(Generic[S]):
    """The state after a control operation plus the events it produced."""

    state: S
    events: tuple[TimerEvent, ...] = ()


def clamp(value: Any, low: int, high: int) -> int:
    """Coerce *value* to an integer within ``[low, high]``.

    Fractions are truncated and anything that is not a number falls back to
    *low*.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return high if value == math.inf else low
    try:
        number = int(value)
    except (TypeError, ValueError):
        return low
    return max(low, min(high, number))


# -- run-state helpers -------------------------------------------------------


def begin(run: RunState, duration: int, now: int) -> RunState:
    """Anchor an idle or paused countdown run so it continues at *now*."""
    if run.frozen is None:
        return RunState.running(now)
    return RunState.running(clock.resume_anchor(now, duration, run.frozen))


def freeze(run: RunState, duration: int, now: int) -> RunState:
    """Capture the remaining seconds of a running countdown run.

    Raises ``ValueError`` if *run* is not anchored to the clock.
    """
    if run.anchor is None:
        raise ValueError(f"cannot freeze a {run.status.value} run")
    return RunState.paused(clock.remaining_seconds(duration, now, run.anchor))


def refit(run: RunState, duration: int) -> RunState:
    """Fit a stopped run to a new *duration*."""
    if run.status is RunStatus.IDLE:
        return RunState.idle(duration)
    if run.status is RunStatus.PAUSED and run.frozen is not None:
        return RunState.paused(min(run.frozen, duration))
    return run


def segment_end(run: RunState, duration: int) -> int | None:
    """Return the instant a running countdown run reaches zero.

    ``None`` while the run is not anchored to the clock.
    """
    if run.anchor is None:
        return None
    return run.anchor + duration * 1000


def countdown_value(run: RunState, duration: int, now: int) -> int:
    """Return the remaining seconds a countdown-style run shows at *now*."""
    if run.anchor is not None:
        return clock.remaining_seconds(duration, now, run.anchor)
    if run.frozen is not None:
        return run.frozen
    return 0


# -- settings ----------------------------------------------------------------


@dataclass(frozen=True)
class TimerSettings:
    """Base for per-mode settings.

    Subclasses declare integer fields with a ``(min, max)`` entry in
    ``RANGES``; any other field is treated as a flag.
    """

    RANGES: ClassVar[dict[str, tuple[int, int]]] = {}

    @classmethod
    def from_mapping(cls: type[T], data: Mapping[str, Any] | None) -> T:
        """Build settings from *data*, filling gaps with defaults."""
        return cls().merged(data or {})

    def merged(self: T, changes: Mapping[str, Any]) -> T:
        """Return a copy with *changes* applied, clamped to each field's range."""
        names = {f.name for f in fields(self)}
        accepted: dict[str, Any] = {}
        for key, value in changes.items():
            if key not in names:
                logger.debug("Ignoring unknown setting %r for %s", key, type(self).__name__)
                continue
            if key in self.RANGES:
                low, high = self.RANGES[key]
                accepted[key] = clamp(value, low, high)
            else:
                accepted[key] = bool(value)
        return replace(self, **accepted)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


# -- stateful wrapper --------------------------------------------------------

Listener = Callable[[TimerEvent], None]
ChangeCallback = Callable[[str, dict[str, Any]], None]


class TimerMachine(Generic[S]):
    """Own one timer state and drive it from a :class:`TickScheduler`.

    Subclasses plug in the pure transition functions of their mode.  Every
    public operation accepts an optional *now* in milliseconds; without it
    the injected clock is read.
    """

    mode: ClassVar[str] = ""
    tick_interval_ms: ClassVar[int] = 100

    def __init__(
        self,
        state: S,
        *,
        scheduler: TickScheduler | None = None,
        clock_fn: Callable[[], int] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._state: S = state
        self._scheduler = scheduler
        self._clock = clock_fn if clock_fn is not None else clock.now_ms
        self._on_change = on_change
        self._listeners: list[Listener] = []
        self._subscription: Subscription | None = None

    # -- public interface ----------------------------------------------------

    @property
    def state(self) -> S:
        return self._state

    @property
    def running(self) -> bool:
        return self._run_state(self._state).is_running

    @property
    def status(self) -> RunStatus:
        return self._run_state(self._state).status

    def add_listener(self, listener: Listener) -> None:
        """Register *listener* for every event this timer emits."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start(self, now: int | None = None) -> None:
        """Start or resume.  A no-op while already running."""
        self._apply(self._start(self._state, self._now(now)))

    def pause(self, now: int | None = None) -> None:
        """Freeze the current value.  A no-op unless running."""
        self._apply(self._pause(self._state, self._now(now)))

    def reset(self) -> None:
        """Return to the initial configuration, stopped."""
        self._apply(self._reset(self._state))

    def skip(self, now: int | None = None) -> None:
        """Force the next segment.  A no-op for modes without segments."""

    def tick(self, now: int | None = None) -> Any:
        """Recompute from the clock, cross any boundary, and return a snapshot."""
        now = self._now(now)
        self._apply(self._tick(self._state, now))
        return self._snapshot(self._state, now)

    def snapshot(self, now: int | None = None) -> Any:
        """Return the observable state at *now* without changing anything."""
        return self._snapshot(self._state, self._now(now))

    def update_settings(self, **changes: Any) -> None:
        """Apply clamped setting *changes*; deferred while running."""
        self._apply(Transition(self._configure(self._state, changes)))

    def persisted(self) -> dict[str, Any]:
        """Return the settings and counters worth keeping between runs."""
        return {}

    def close(self) -> None:
        """Drop the tick subscription, if any."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    # -- mode hooks ----------------------------------------------------------

    def _start(self, state: S, now: int) -> Transition[S]:
        raise NotImplementedError

    def _pause(self, state: S, now: int) -> Transition[S]:
        raise NotImplementedError

    def _reset(self, state: S) -> Transition[S]:
        raise NotImplementedError

    def _tick(self, state: S, now: int) -> Transition[S]:
        raise NotImplementedError

    def _configure(self, state: S, changes: Mapping[str, Any]) -> S:
        return state

    def _snapshot(self, state: S, now: int) -> Any:
        raise NotImplementedError

    def _run_state(self, state: S) -> RunState:
        return state.run  # type: ignore[attr-defined]

    # -- private helpers -----------------------------------------------------

    def _now(self, now: int | None) -> int:
        return self._clock() if now is None else now

    def _apply(self, transition: Transition[S]) -> None:
        """Install the new state, then sync the subscription and emit events."""
        before = self.persisted()
        previous = self.status
        self._state = transition.state
        if self.status is not previous:
            logger.debug("%s: %s -> %s", self.mode, previous.value, self.status.value)
        self._sync_subscription()
        for event in transition.events:
            logger.info("%s: %s %s", self.mode, event.kind.value, event.segment or "")
            for listener in list(self._listeners):
                listener(event)
        if self._on_change is not None:
            after = self.persisted()
            if after != before:
                self._on_change(self.mode, after)

    def _sync_subscription(self) -> None:
        if self._scheduler is None:
            return
        if self.running and self._subscription is None:
            self._subscription = self._scheduler.subscribe(self.tick_interval_ms, self.tick)
        elif not self.running and self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
