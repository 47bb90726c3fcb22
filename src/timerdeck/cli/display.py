"""Terminal formatting helpers and the DURATION parameter type."""

from __future__ import annotations

from typing import Any

import click

from timerdeck.core.countdown import CountdownSnapshot
from timerdeck.core.interval import IntervalSnapshot
from timerdeck.core.machine import RunStatus
from timerdeck.core.pomodoro import LONG_BREAK, SHORT_BREAK, WORK, PomodoroSnapshot
from timerdeck.core.repeating import RepeatingSnapshot
from timerdeck.core.stopwatch import StopwatchSnapshot

SEGMENT_LABELS = {
    WORK: "Work",
    SHORT_BREAK: "Short Break",
    LONG_BREAK: "Long Break",
}


def format_seconds(seconds: int) -> str:
    """Format *seconds* as ``M:SS``, or ``H:MM:SS`` from one hour up."""
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_stopwatch(milliseconds: int) -> str:
    """Format *milliseconds* as ``M:SS.cc`` (hundredths)."""
    total = max(0, int(milliseconds))
    centis = (total % 1000) // 10
    return f"{format_seconds(total // 1000)}.{centis:02d}"


def _status_suffix(status: RunStatus) -> str:
    if status is RunStatus.PAUSED:
        return " (paused)"
    if status is RunStatus.COMPLETED:
        return " (done)"
    return ""


def render(snapshot: Any) -> str:
    """Return the one-line display for a timer snapshot."""
    if isinstance(snapshot, StopwatchSnapshot):
        line = format_stopwatch(snapshot.value)
        if snapshot.laps:
            line += f"  lap {len(snapshot.laps)}: {format_stopwatch(snapshot.laps[0])}"
    elif isinstance(snapshot, PomodoroSnapshot):
        count = snapshot.completed_count
        line = (
            f"{SEGMENT_LABELS[snapshot.segment]}  {format_seconds(snapshot.value)}  "
            f"completed: {count} pomodoro{'s' if count != 1 else ''}"
        )
    elif isinstance(snapshot, IntervalSnapshot):
        line = (
            f"{snapshot.label}  round {snapshot.round}/{snapshot.total_rounds}  "
            f"{format_seconds(snapshot.value)}"
        )
    elif isinstance(snapshot, RepeatingSnapshot):
        target = "∞" if snapshot.infinite else str(snapshot.repeat_count)
        line = f"{format_seconds(snapshot.value)}  completed: {snapshot.completed_count}/{target}"
    elif isinstance(snapshot, CountdownSnapshot):
        line = format_seconds(snapshot.value)
    else:
        raise TypeError(f"cannot render {type(snapshot).__name__}")
    return line + _status_suffix(snapshot.status)


class DurationType(click.ParamType):
    """Accept ``SS``, ``MM:SS`` or ``H:MM:SS`` and convert to total seconds."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> int:
        if isinstance(value, int):
            return value
        parts = str(value).strip().split(":")
        if not 1 <= len(parts) <= 3 or not all(part.isdigit() for part in parts):
            self.fail(f"{value!r} is not SS, MM:SS or H:MM:SS", param, ctx)
        numbers = [int(part) for part in parts]
        if any(n > 59 for n in numbers[1:]):
            self.fail(f"{value!r} has a minutes or seconds field above 59", param, ctx)
        total = 0
        for number in numbers:
            total = total * 60 + number
        return total


DURATION = DurationType()
