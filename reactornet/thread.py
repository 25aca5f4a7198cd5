"""A named worker thread that records its id before running its function."""

from __future__ import annotations

import threading
from typing import Callable

from reactornet.event_loop import current_tid

ThreadFunc = Callable[[], None]


class Thread:
    """Runs one function in a new thread; :meth:`start` returns once the thread id is known."""

    _counter_lock = threading.Lock()
    _num_created = 0

    def __init__(self, func: ThreadFunc, name: str = "") -> None:
        self._func = func
        self.started = False
        self.joined = False
        self.tid = 0
        self._thread: threading.Thread | None = None
        with Thread._counter_lock:
            Thread._num_created += 1
            number = Thread._num_created
        self.name = name or f"Thread{number:02d}"

    def start(self) -> None:
        if self.started:
            raise RuntimeError(f"thread {self.name} already started")
        self.started = True
        ready = threading.Event()

        def run() -> None:
            self.tid = current_tid()
            ready.set()
            self._func()

        # Daemon: a thread nobody joins must not keep the process alive.
        self._thread = threading.Thread(target=run, name=self.name, daemon=True)
        self._thread.start()
        ready.wait()

    def join(self) -> None:
        if self._thread is None:
            raise RuntimeError(f"thread {self.name} was never started")
        self.joined = True
        self._thread.join()

    @classmethod
    def num_created(cls) -> int:
        with cls._counter_lock:
            return cls._num_created