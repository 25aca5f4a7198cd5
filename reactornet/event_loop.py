"""The reactor: one event loop per thread, dispatching I/O events, timers and queued work."""

from __future__ import annotations

import math
import os
import threading
from typing import Callable

from reactornet.channel import Channel
from reactornet.logger import log_debug, log_error, log_info
from reactornet.poller import new_default_poller
from reactornet.timer import TimerCallback, TimerId
from reactornet.timer_queue import TimerQueue
from reactornet.timestamp import MICRO_SECONDS_PER_SECOND, Timestamp, add_time

Functor = Callable[[], None]

# Upper bound on one blocking wait of the poller.
_POLL_TIME_MS = 10000
# Never ask the poller to wait less than this for a timer.
_MIN_TIMER_WAIT_US = 100

_registry_lock = threading.Lock()
_loop_in_thread: dict[int, "EventLoop"] = {}


def current_tid() -> int:
    """Return an identifier of the calling thread."""
    return threading.get_ident()


class EventLoop:
    """Runs in the thread that created it; other threads hand it work with :meth:`queue_in_loop`.

    Only one loop may exist per thread at a time.
    """

    def __init__(self) -> None:
        self.thread_id = current_tid()
        with _registry_lock:
            existing = _loop_in_thread.get(self.thread_id)
            if existing is not None:
                raise RuntimeError(
                    f"another EventLoop {id(existing):#x} exists in thread {self.thread_id}"
                )
            _loop_in_thread[self.thread_id] = self
        log_debug("EventLoop created %x in thread %d", id(self), self.thread_id)

        self.looping = False
        self.poll_return_time = Timestamp.invalid()
        self._quit = False
        self._closed = False
        self._calling_pending = False
        self._mutex = threading.Lock()
        self._pending: list[Functor] = []

        try:
            self._poller = new_default_poller(self)
            self._timer_queue = TimerQueue(self)
            self._wakeup_read, self._wakeup_write = os.pipe()
            os.set_blocking(self._wakeup_read, False)
            os.set_blocking(self._wakeup_write, False)
            self._wakeup_channel = Channel(self, self._wakeup_read)
            self._wakeup_channel.read_callback = self._handle_read
            self._wakeup_channel.enable_reading()
        except BaseException:
            self._unregister()
            raise

    def __enter__(self) -> EventLoop:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def loop(self) -> None:
        """Dispatch events until :meth:`quit` is called."""
        self.looping = True
        self._quit = False
        log_info("EventLoop %x start looping", id(self))
        try:
            while not self._quit:
                now, active = self._poller.poll(self._poll_timeout_ms())
                self.poll_return_time = now
                for channel in active:
                    channel.handle_event(now)
                self._timer_queue.process_expired(Timestamp.now())
                self._do_pending_functors()
        finally:
            log_info("EventLoop %x stop looping", id(self))
            self.looping = False

    def quit(self) -> None:
        """Stop the loop after the current iteration; wakes it if called from another thread."""
        self._quit = True
        if not self.is_in_loop_thread():
            self.wakeup()

    def run_in_loop(self, callback: Functor) -> None:
        """Run ``callback`` now if in the loop thread, otherwise hand it to the loop."""
        if self.is_in_loop_thread():
            callback()
        else:
            self.queue_in_loop(callback)

    def queue_in_loop(self, callback: Functor) -> None:
        """Have the loop run ``callback`` after its current round of events."""
        with self._mutex:
            self._pending.append(callback)
        # While pending work is running the loop would block afterwards: wake it.
        if not self.is_in_loop_thread() or self._calling_pending:
            self.wakeup()

    def wakeup(self) -> None:
        """Make a blocked poll return."""
        try:
            os.write(self._wakeup_write, b"\x01")
        except BlockingIOError:
            # The pipe is full, so a wake-up is already pending.
            pass
        except OSError as exc:
            log_error("EventLoop::wakeup() failed: %d", exc.errno or 0)

    def update_channel(self, channel: Channel) -> None:
        self._poller.update_channel(channel)

    def remove_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def has_channel(self, channel: Channel) -> bool:
        return self._poller.has_channel(channel)

    def is_in_loop_thread(self) -> bool:
        return self.thread_id == current_tid()

    def run_at(self, when: Timestamp, callback: TimerCallback) -> TimerId:
        """Run ``callback`` once at ``when``."""
        return self._timer_queue.add_timer(callback, when, 0.0)

    def run_after(self, delay: float, callback: TimerCallback) -> TimerId:
        """Run ``callback`` once, ``delay`` seconds from now."""
        return self.run_at(add_time(Timestamp.now(), delay), callback)

    def run_every(self, interval: float, callback: TimerCallback) -> TimerId:
        """Run ``callback`` every ``interval`` seconds, starting one interval from now."""
        when = add_time(Timestamp.now(), interval)
        return self._timer_queue.add_timer(callback, when, interval)

    def cancel(self, timer_id: TimerId) -> None:
        self._timer_queue.cancel(timer_id)

    def close(self) -> None:
        """Release the wake-up pipe and the poller; the thread may then create a new loop."""
        if self._closed:
            return
        self._closed = True
        self._wakeup_channel.disable_all()
        self._wakeup_channel.remove()
        for fd in (self._wakeup_read, self._wakeup_write):
            try:
                os.close(fd)
            except OSError as exc:
                log_error("EventLoop::close() failed: %d", exc.errno or 0)
        self._poller.close()
        self._unregister()

    def _unregister(self) -> None:
        with _registry_lock:
            if _loop_in_thread.get(self.thread_id) is self:
                del _loop_in_thread[self.thread_id]

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            while os.read(self._wakeup_read, 4096):
                pass
        except BlockingIOError:
            pass
        except OSError as exc:
            log_error("EventLoop::handleRead() failed: %d", exc.errno or 0)

    def _poll_timeout_ms(self) -> int:
        expiration = self._timer_queue.next_expiration()
        if expiration is None:
            return _POLL_TIME_MS
        delta_us = expiration.micro_seconds_since_epoch - Timestamp.now().micro_seconds_since_epoch
        delta_us = max(delta_us, _MIN_TIMER_WAIT_US)
        return min(_POLL_TIME_MS, math.ceil(delta_us * 1000 / MICRO_SECONDS_PER_SECOND))

    def _do_pending_functors(self) -> None:
        self._calling_pending = True
        with self._mutex:
            functors, self._pending = self._pending, []
        try:
            for functor in functors:
                functor()
        finally:
            self._calling_pending = False