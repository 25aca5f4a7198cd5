"""A pool of event-loop threads handed out round robin."""

from __future__ import annotations

from typing import Callable, Optional

from reactornet.event_loop import EventLoop
from reactornet.event_loop_thread import EventLoopThread

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThreadPool:
    """Owns ``num_threads`` loop threads; with none, all work goes to the base loop."""

    def __init__(self, base_loop: EventLoop, name: str) -> None:
        self.base_loop = base_loop
        self.name = name
        self.started = False
        self.num_threads = 0
        self._next = 0
        self._threads: list[EventLoopThread] = []
        self._loops: list[EventLoop] = []

    def __enter__(self) -> EventLoopThreadPool:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self, callback: Optional[ThreadInitCallback] = None) -> None:
        """Start the threads; ``callback`` runs once in each new loop (or on the base loop)."""
        self.started = True
        for i in range(self.num_threads):
            thread = EventLoopThread(callback, f"{self.name}{i:02d}")
            self._threads.append(thread)
            self._loops.append(thread.start_loop())
        if self.num_threads == 0 and callback is not None:
            callback(self.base_loop)

    def get_next_loop(self) -> EventLoop:
        """Return the next loop in round-robin order, or the base loop if there are no threads."""
        if not self._loops:
            return self.base_loop
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def get_all_loops(self) -> list[EventLoop]:
        if not self._loops:
            return [self.base_loop]
        return list(self._loops)

    def close(self) -> None:
        """Stop every loop thread."""
        for thread in self._threads:
            thread.close()
        self._threads.clear()
        self._loops.clear()
        self._next = 0