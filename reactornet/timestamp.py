"""Microsecond-resolution points in time."""

from __future__ import annotations

import time
from dataclasses import dataclass

MICRO_SECONDS_PER_SECOND = 1000 * 1000


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time, counted in microseconds since the Unix epoch."""

    micro_seconds_since_epoch: int = 0

    @classmethod
    def now(cls) -> Timestamp:
        """Return the current wall-clock time."""
        return cls(time.time_ns() // 1000)

    @classmethod
    def invalid(cls) -> Timestamp:
        """Return the timestamp that marks "no time"."""
        return cls()

    def valid(self) -> bool:
        """Tell whether this timestamp lies after the epoch."""
        return self.micro_seconds_since_epoch > 0

    def to_string(self) -> str:
        """Format as local time, ``YYYY-MM-DD HH:MM:SS``."""
        seconds = self.micro_seconds_since_epoch // MICRO_SECONDS_PER_SECOND
        tm = time.localtime(seconds)
        return "%4d-%02d-%02d %02d:%02d:%02d" % (
            tm.tm_year,
            tm.tm_mon,
            tm.tm_mday,
            tm.tm_hour,
            tm.tm_min,
            tm.tm_sec,
        )

    def __str__(self) -> str:
        return self.to_string()


def add_time(timestamp: Timestamp, seconds: float) -> Timestamp:
    """Return ``timestamp`` moved by ``seconds`` (fractions truncated to whole microseconds)."""
    delta = int(seconds * MICRO_SECONDS_PER_SECOND)
    return Timestamp(timestamp.micro_seconds_since_epoch + delta)