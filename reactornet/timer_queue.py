"""Timers of one event loop, kept in order of expiration."""

from __future__ import annotations

import math
from bisect import bisect_left, insort
from typing import Any, Optional

from reactornet.timer import Timer, TimerCallback, TimerId
from reactornet.timestamp import Timestamp

_Entry = tuple  # (expiration in microseconds, sequence, Timer)


class TimerQueue:
    """Holds the timers of one event loop.

    The loop asks :meth:`next_expiration` how long it may block and calls
    :meth:`process_expired` after each wake-up to run the timers that are due.
    """

    def __init__(self, loop: Any) -> None:
        self._loop = loop
        self._timers: list[_Entry] = []
        self._active: dict[int, Timer] = {}
        self._calling_expired = False
        self._canceling: set[int] = set()

    def __len__(self) -> int:
        return len(self._timers)

    def add_timer(self, callback: TimerCallback, when: Timestamp, interval: float) -> TimerId:
        """Schedule ``callback`` at ``when``, repeating every ``interval`` seconds if positive."""
        timer = Timer(callback, when, interval)
        self._loop.run_in_loop(lambda: self._insert(timer))
        return TimerId(timer, timer.sequence)

    def cancel(self, timer_id: TimerId) -> None:
        """Cancel a timer; unknown or already finished timers are ignored."""
        self._loop.run_in_loop(lambda: self._cancel_in_loop(timer_id))

    def next_expiration(self) -> Optional[Timestamp]:
        """Return when the earliest timer is due, or None when there are none."""
        if not self._timers:
            return None
        return self._timers[0][2].expiration

    def process_expired(self, now: Optional[Timestamp] = None) -> int:
        """Run every timer due at or before ``now``; return how many ran."""
        if now is None:
            now = Timestamp.now()
        expired = self._take_expired(now)

        self._calling_expired = True
        self._canceling.clear()
        try:
            for timer in expired:
                timer.run()
        finally:
            self._calling_expired = False

        self._reset(expired, now)
        return len(expired)

    def _cancel_in_loop(self, timer_id: TimerId) -> None:
        timer = timer_id.timer
        if timer is None:
            return
        if self._active.get(timer_id.sequence) is timer:
            key = (timer.expiration.micro_seconds_since_epoch, timer.sequence)
            index = bisect_left(self._timers, key)
            if index < len(self._timers) and self._timers[index][2] is timer:
                del self._timers[index]
            del self._active[timer_id.sequence]
        elif self._calling_expired:
            # The timer is running right now: make sure it is not rescheduled.
            self._canceling.add(timer_id.sequence)

    def _take_expired(self, now: Timestamp) -> list[Timer]:
        end = bisect_left(self._timers, (now.micro_seconds_since_epoch, math.inf))
        expired = [entry[2] for entry in self._timers[:end]]
        del self._timers[:end]
        for timer in expired:
            self._active.pop(timer.sequence, None)
        return expired

    def _reset(self, expired: list[Timer], now: Timestamp) -> None:
        for timer in expired:
            if timer.repeat and timer.sequence not in self._canceling:
                timer.restart(now)
                self._insert(timer)

    def _insert(self, timer: Timer) -> None:
        entry = (timer.expiration.micro_seconds_since_epoch, timer.sequence, timer)
        insort(self._timers, entry)
        self._active[timer.sequence] = timer