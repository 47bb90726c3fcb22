"""CLI entry point for timerdeck.

Uses Click to expose the ``timerdeck`` command group.  Each timer command
loads the saved settings for its mode, applies any options given on the
command line (saving them again), then runs the timer in the foreground
until it stops on its own or Ctrl-C pauses it.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, TypeVar

import click

import timerdeck
from timerdeck.cli.display import DURATION, format_stopwatch, render
from timerdeck.cli.notifier import CompletionNotifier
from timerdeck.core.countdown import CountdownTimer
from timerdeck.core.interval import IntervalTimer
from timerdeck.core.machine import TimerMachine
from timerdeck.core.pomodoro import PomodoroTimer
from timerdeck.core.repeating import RepeatingTimer
from timerdeck.core.scheduler import TickScheduler
from timerdeck.core.settings_store import SettingsStore, StorageError
from timerdeck.core.stopwatch import Stopwatch

T = TypeVar("T")

_REDRAW_MS = 100
_MODES = ("countdown", "pomodoro", "interval", "repeating")


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``StorageError`` to a CLI error.

    On ``StorageError`` the message is printed to stderr and the process
    exits with code 1.
    """
    try:
        return action()
    except StorageError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _configure(timer: TimerMachine[Any], **changes: Any) -> None:
    """Apply the options the user actually passed."""
    given = {key: value for key, value in changes.items() if value is not None}
    if given:
        _run(lambda: timer.update_settings(**given))


def _drive(timer: TimerMachine[Any], scheduler: TickScheduler) -> None:
    """Start *timer* and redraw its line until it stops or Ctrl-C pauses it."""

    def redraw() -> None:
        click.echo(f"\r{render(timer.snapshot())}\033[K", nl=False)

    display = scheduler.subscribe(_REDRAW_MS, redraw)
    try:
        _run(timer.start)
        redraw()
        _run(lambda: scheduler.run(until=lambda: not timer.running))
    except KeyboardInterrupt:
        _run(timer.pause)
    finally:
        display.cancel()
        timer.close()
    redraw()
    click.echo()


def _attach_notifier(store: SettingsStore, timer: TimerMachine[Any]) -> None:
    timer.add_listener(CompletionNotifier(timer.mode, enabled=bool(store.load("alerts", True))))


@click.group()
@click.version_option(version=timerdeck.__version__, prog_name="timerdeck")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding settings.json (default: ~/.config/timerdeck).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log engine transitions to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """timerdeck: countdown, Pomodoro, interval, repeating and stopwatch timers."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    ctx.obj = SettingsStore(config_dir)


@cli.command()
@click.argument("duration", type=DURATION, required=False)
@click.pass_obj
def countdown(store: SettingsStore, duration: int | None) -> None:
    """Count down from DURATION (SS, MM:SS or H:MM:SS; default: last used)."""
    scheduler = TickScheduler()
    timer = CountdownTimer.restore(store.load("countdown"), scheduler=scheduler, on_change=store.save)
    _configure(timer, duration=duration)
    _attach_notifier(store, timer)
    _drive(timer, scheduler)


@cli.command()
@click.option("--work", type=int, help="Work segment length in minutes (1-60).")
@click.option("--short-break", type=int, help="Short break length in minutes (1-30).")
@click.option("--long-break", type=int, help="Long break length in minutes (1-60).")
@click.option("--long-break-interval", type=int, help="Work segments between long breaks (1-10).")
@click.option("--fresh", is_flag=True, help="Reset the completed-pomodoro count first.")
@click.pass_obj
def pomodoro(
    store: SettingsStore,
    work: int | None,
    short_break: int | None,
    long_break: int | None,
    long_break_interval: int | None,
    fresh: bool,
) -> None:
    """Cycle work segments and breaks until interrupted.

    Ctrl-C pauses and exits.  Skipping a segment early is only available
    from Python, through PomodoroTimer.skip().
    """

    def seconds(minutes: int | None) -> int | None:
        return None if minutes is None else minutes * 60

    scheduler = TickScheduler()
    timer = PomodoroTimer.restore(store.load("pomodoro"), scheduler=scheduler, on_change=store.save)
    _configure(
        timer,
        work_duration=seconds(work),
        short_break_duration=seconds(short_break),
        long_break_duration=seconds(long_break),
        long_break_interval=long_break_interval,
    )
    if fresh:
        _run(timer.reset)
    _attach_notifier(store, timer)
    _drive(timer, scheduler)


@cli.command()
@click.option("--a", "duration_a", type=DURATION, help="Length of segment A (1-600 seconds).")
@click.option("--b", "duration_b", type=DURATION, help="Length of segment B (1-600 seconds).")
@click.option("--rounds", type=int, help="Number of A/B rounds (1-50).")
@click.pass_obj
def interval(
    store: SettingsStore,
    duration_a: int | None,
    duration_b: int | None,
    rounds: int | None,
) -> None:
    """Alternate segments A and B for a number of rounds.

    Ctrl-C pauses and exits.  Skipping a segment early is only available
    from Python, through IntervalTimer.skip().
    """
    scheduler = TickScheduler()
    timer = IntervalTimer.restore(store.load("interval"), scheduler=scheduler, on_change=store.save)
    _configure(timer, duration_a=duration_a, duration_b=duration_b, total_rounds=rounds)
    _attach_notifier(store, timer)
    _drive(timer, scheduler)


@cli.command()
@click.argument("duration", type=DURATION, required=False)
@click.option("--count", type=int, help="How many times to repeat (1-100).")
@click.option("--infinite/--finite", default=None, help="Repeat forever, or stop after --count.")
@click.pass_obj
def repeat(
    store: SettingsStore,
    duration: int | None,
    count: int | None,
    infinite: bool | None,
) -> None:
    """Repeat a DURATION countdown a fixed number of times or forever."""
    scheduler = TickScheduler()
    timer = RepeatingTimer.restore(store.load("repeating"), scheduler=scheduler, on_change=store.save)
    _configure(timer, duration=duration, repeat_count=count, infinite=infinite)
    _attach_notifier(store, timer)
    _drive(timer, scheduler)


@cli.command()
def stopwatch() -> None:
    """Count up until interrupted.

    Laps are not recorded here; use Stopwatch.record_lap() from Python.
    """
    scheduler = TickScheduler()
    timer = Stopwatch(scheduler=scheduler)
    _drive(timer, scheduler)
    click.echo(f"Elapsed: {format_stopwatch(timer.snapshot().value)}")


@cli.command()
@click.argument("mode", type=click.Choice(_MODES), required=False)
@click.pass_obj
def settings(store: SettingsStore, mode: str | None) -> None:
    """Show saved settings for MODE, or for every mode."""
    data = store.load(mode, {}) if mode is not None else store.load_all()
    click.echo(json.dumps(data, indent=2, sort_keys=True))


@cli.command()
@click.argument("state", type=click.Choice(["on", "off"]), required=False)
@click.pass_obj
def alerts(store: SettingsStore, state: str | None) -> None:
    """Show or change whether completions are announced."""
    if state is None:
        enabled = bool(store.load("alerts", True))
        click.echo(f"Alerts: {'on' if enabled else 'off'}")
        return
    _run(lambda: store.save("alerts", state == "on"))
    click.echo(f"Alerts turned {state}")
