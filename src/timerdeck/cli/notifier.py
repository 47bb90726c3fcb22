"""Completion notifier: prints a message and rings the bell on timer events."""

from __future__ import annotations

from typing import Callable

import click

from timerdeck.core.machine import EventKind, TimerEvent
from timerdeck.core.pomodoro import LONG_BREAK, SHORT_BREAK, WORK

_MESSAGES: dict[tuple[str, EventKind, str | None], str] = {
    ("countdown", EventKind.COMPLETE, None): "Countdown timer completed!",
    ("pomodoro", EventKind.SEGMENT_COMPLETE, WORK): "Work session completed! Time for a break.",
    ("pomodoro", EventKind.SEGMENT_COMPLETE, SHORT_BREAK): "Short break completed! Ready to work?",
    ("pomodoro", EventKind.SEGMENT_COMPLETE, LONG_BREAK): "Long break completed! Ready to work?",
    ("interval", EventKind.CYCLE_COMPLETE, None): "All interval rounds completed!",
    ("repeating", EventKind.COMPLETE, None): "All repeating timer cycles completed!",
}


def message_for(mode: str, event: TimerEvent) -> str | None:
    """Return the alert text for *event* on a *mode* timer, if it deserves one."""
    return _MESSAGES.get((mode, event.kind, event.segment))


class CompletionNotifier:
    """Timer listener that announces completions on the terminal.

    Does nothing when *enabled* is false, mirroring the user's alerts
    preference.
    """

    def __init__(
        self,
        mode: str,
        enabled: bool = True,
        echo: Callable[..., None] = click.echo,
    ) -> None:
        self.mode = mode
        self.enabled = enabled
        self._echo = echo

    def __call__(self, event: TimerEvent) -> None:
        message = message_for(self.mode, event)
        if message is None or not self.enabled:
            return
        self._echo(f"\n{message}\a")
