"""Timers run by a timer queue, and the handles used to cancel them."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Callable

from reactornet.timestamp import Timestamp, add_time

TimerCallback = Callable[[], None]

_sequence = itertools.count(1)
_sequence_lock = threading.Lock()
_created = 0


def _next_sequence() -> int:
    global _created
    with _sequence_lock:
        _created = next(_sequence)
        return _created


class Timer:
    """A callback due at an expiration time, optionally repeating every ``interval`` seconds."""

    def __init__(self, callback: TimerCallback, when: Timestamp, interval: float) -> None:
        self._callback = callback
        self._expiration = when
        self._interval = interval
        self._repeat = interval > 0.0
        self._sequence = _next_sequence()

    @property
    def expiration(self) -> Timestamp:
        return self._expiration

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def repeat(self) -> bool:
        return self._repeat

    @property
    def sequence(self) -> int:
        return self._sequence

    def run(self) -> None:
        self._callback()

    def restart(self, now: Timestamp) -> None:
        """Schedule the next run one interval after ``now``, or invalidate a one-shot timer."""
        if self._repeat:
            self._expiration = add_time(now, self._interval)
        else:
            self._expiration = Timestamp.invalid()

    @classmethod
    def num_created(cls) -> int:
        """Return how many timers have been created in this process."""
        with _sequence_lock:
            return _created


@dataclass(frozen=True)
class TimerId:
    """Identifies a timer by object and sequence number."""

    timer: Timer | None = None
    sequence: int = 0