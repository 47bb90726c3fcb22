"""Clock source: anchor arithmetic shared by every timer mode.

All timestamps are integer milliseconds taken from ``time.monotonic()`` so
the engine is immune to system clock changes.  Durations are whole seconds.
"""

import time


def now_ms() -> int:
    """Return the current monotonic time in milliseconds."""
    return round(time.monotonic() * 1000)


def sleep_ms(milliseconds: int) -> None:
    """Block the calling thread for *milliseconds*."""
    if milliseconds > 0:
        time.sleep(milliseconds / 1000)


def elapsed_ms(now: int, anchor: int) -> int:
    """Return the milliseconds elapsed since *anchor*, never negative."""
    return max(0, now - anchor)


def remaining_seconds(duration: int, now: int, anchor: int) -> int:
    """Return the whole seconds left of *duration* for a run anchored at *anchor*.

    Only whole elapsed seconds count, so the value drops from *duration* to
    ``duration - 1`` exactly one second after the anchor.
    """
    return max(0, duration - elapsed_ms(now, anchor) // 1000)


def resume_anchor(now: int, duration: int, frozen: int) -> int:
    """Return the anchor that makes a run with *frozen* seconds left continue at *now*.

    The anchor is placed in the past by exactly the time already consumed,
    so a fresh start (``frozen == duration``) anchors at *now*.
    """
    return now - (duration - frozen) * 1000
