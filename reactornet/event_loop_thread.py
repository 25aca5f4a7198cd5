"""A thread that owns and runs one event loop."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from reactornet.event_loop import EventLoop
from reactornet.thread import Thread

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThread:
    """Starts a thread, creates an :class:`EventLoop` in it and runs it until closed."""

    def __init__(self, callback: Optional[ThreadInitCallback] = None, name: str = "") -> None:
        self.exiting = False
        self._callback = callback
        self._cond = threading.Condition()
        self._loop: Optional[EventLoop] = None
        self._ready: Optional[EventLoop] = None
        self._error: Optional[BaseException] = None
        self._thread = Thread(self._thread_func, name)

    @property
    def name(self) -> str:
        return self._thread.name

    def __enter__(self) -> EventLoopThread:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start_loop(self) -> EventLoop:
        """Start the thread and return its loop once it exists."""
        self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._ready is not None or self._error is not None)
            if self._error is not None:
                raise RuntimeError("event loop thread failed to start") from self._error
            return self._ready

    def close(self) -> None:
        """Stop the loop and wait for the thread to finish."""
        self.exiting = True
        with self._cond:
            loop = self._loop
        if loop is not None:
            # Queued so the quit happens inside loop(), whatever stage it has reached.
            loop.queue_in_loop(loop.quit)
        if self._thread.started and not self._thread.joined:
            self._thread.join()

    def _fail(self, exc: BaseException) -> None:
        with self._cond:
            self._error = exc
            self._cond.notify_all()

    def _thread_func(self) -> None:
        try:
            loop = EventLoop()
        except Exception as exc:
            self._fail(exc)
            return
        try:
            if self._callback is not None:
                self._callback(loop)
        except Exception as exc:
            loop.close()
            self._fail(exc)
            return

        with self._cond:
            self._loop = loop
            self._ready = loop
            self._cond.notify_all()

        try:
            loop.loop()
        finally:
            with self._cond:
                self._loop = None
            loop.close()