"""Tick scheduler: a single-threaded cooperative periodic-callback driver."""

from __future__ import annotations

import logging
from typing import Callable

from timerdeck.core import clock

logger = logging.getLogger(__name__)


class Subscription:
    """A periodic callback registered with a :class:`TickScheduler`."""

    def __init__(
        self,
        scheduler: TickScheduler,
        period_ms: int,
        callback: Callable[[], object],
        next_due: int,
    ) -> None:
        self.period_ms = period_ms
        self.callback = callback
        self.next_due = next_due
        self.active = True
        self._scheduler = scheduler

    def cancel(self) -> None:
        """Stop this subscription; it never fires again."""
        self._scheduler.cancel(self)


class TickScheduler:
    """Invoke subscribed callbacks at fixed periods on the calling thread.

    Nothing runs in the background: callbacks fire only from
    :meth:`run_pending` or the blocking :meth:`run` loop, so every callback
    runs to completion before any other transition can begin.
    """

    def __init__(
        self,
        clock_fn: Callable[[], int] | None = None,
        sleep_fn: Callable[[int], None] | None = None,
    ) -> None:
        self._clock = clock_fn if clock_fn is not None else clock.now_ms
        self._sleep = sleep_fn if sleep_fn is not None else clock.sleep_ms
        self._subscriptions: list[Subscription] = []

    # -- public interface ----------------------------------------------------

    @property
    def active(self) -> bool:
        """True while at least one subscription is registered."""
        return bool(self._subscriptions)

    def subscribe(self, period_ms: int, callback: Callable[[], object]) -> Subscription:
        """Call *callback* every *period_ms* milliseconds, starting one period from now."""
        if period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {period_ms}")
        subscription = Subscription(self, period_ms, callback, self._clock() + period_ms)
        self._subscriptions.append(subscription)
        logger.debug("Subscribed %r every %d ms", callback, period_ms)
        return subscription

    def cancel(self, subscription: Subscription) -> None:
        """Remove *subscription*.  Cancelling twice is harmless."""
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug("Cancelled %r", subscription.callback)

    def next_due(self) -> int | None:
        """Return the earliest due time, or ``None`` when nothing is subscribed."""
        if not self._subscriptions:
            return None
        return min(sub.next_due for sub in self._subscriptions)

    def run_pending(self, now: int | None = None) -> int:
        """Fire every subscription that is due at *now*; return how many fired.

        Each due subscription fires once.  Beats missed by a late caller are
        coalesced rather than replayed.
        """
        if now is None:
            now = self._clock()
        fired = 0
        for subscription in list(self._subscriptions):
            if not subscription.active or subscription.next_due > now:
                continue
            subscription.callback()
            fired += 1
            if subscription.active:
                missed = (now - subscription.next_due) // subscription.period_ms
                subscription.next_due += (missed + 1) * subscription.period_ms
        return fired

    def run(self, until: Callable[[], bool] | None = None) -> None:
        """Block, firing callbacks as they come due.

        Returns once no subscription remains or *until* returns true.
        """
        while self._subscriptions:
            if until is not None and until():
                return
            due = self.next_due()
            if due is None:
                return
            self._sleep(due - self._clock())
            self.run_pending()
