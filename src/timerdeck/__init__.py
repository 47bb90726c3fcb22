"""timerdeck: drift-corrected countdown, Pomodoro, interval, repeating and stopwatch timers."""

__version__ = "0.1.0"
