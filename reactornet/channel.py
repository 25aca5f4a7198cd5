"""A file descriptor together with the events it wants and the callbacks that handle them."""

from __future__ import annotations

import weakref
from enum import IntFlag
from typing import Any, Callable, Optional

from reactornet.logger import log_info
from reactornet.timestamp import Timestamp

EventCallback = Callable[[], None]
ReadEventCallback = Callable[[Timestamp], None]


class Event(IntFlag):
    """I/O readiness flags, independent of the polling backend."""

    NONE = 0
    IN = 0x001
    PRI = 0x002
    OUT = 0x004
    ERR = 0x008
    HUP = 0x010


NONE_EVENT = Event.NONE
READ_EVENT = Event.IN | Event.PRI
WRITE_EVENT = Event.OUT


class Channel:
    """Binds one file descriptor to an event loop.

    ``events`` holds what the channel is interested in, ``revents`` what the
    poller last reported; ``index`` is the poller's registration state
    (-1 while the poller does not know the channel).
    """

    def __init__(self, loop: Any, fd: int) -> None:
        self.loop = loop
        self.fd = fd
        self.events = Event.NONE
        self.revents = Event.NONE
        self.index = -1
        self.read_callback: Optional[ReadEventCallback] = None
        self.write_callback: Optional[EventCallback] = None
        self.close_callback: Optional[EventCallback] = None
        self.error_callback: Optional[EventCallback] = None
        self._tie: Optional[weakref.ref] = None

    def tie(self, obj: Any) -> None:
        """Only handle events while ``obj`` is still alive."""
        self._tie = weakref.ref(obj)

    def handle_event(self, receive_time: Timestamp) -> None:
        """Run the callbacks matching ``revents``."""
        if self._tie is not None:
            guard = self._tie()
            if guard is None:
                return
            self._handle_event_with_guard(receive_time)
            del guard
        else:
            self._handle_event_with_guard(receive_time)

    def _handle_event_with_guard(self, receive_time: Timestamp) -> None:
        revents = self.revents
        log_info("Channel handleEvent revents: %d", int(revents))

        # The peer hung up and nothing is left to read.
        if (revents & Event.HUP) and not (revents & Event.IN):
            if self.close_callback:
                self.close_callback()

        if revents & Event.ERR:
            if self.error_callback:
                self.error_callback()

        if revents & (Event.IN | Event.PRI):
            if self.read_callback:
                self.read_callback(receive_time)

        if revents & Event.OUT:
            if self.write_callback:
                self.write_callback()

    def enable_reading(self) -> None:
        self.events |= READ_EVENT
        self._update()

    def disable_reading(self) -> None:
        self.events &= ~READ_EVENT
        self._update()

    def enable_writing(self) -> None:
        self.events |= WRITE_EVENT
        self._update()

    def disable_writing(self) -> None:
        self.events &= ~WRITE_EVENT
        self._update()

    def disable_all(self) -> None:
        self.events = NONE_EVENT
        self._update()

    def is_none_event(self) -> bool:
        return self.events == NONE_EVENT

    def is_reading(self) -> bool:
        return bool(self.events & READ_EVENT)

    def is_writing(self) -> bool:
        return bool(self.events & WRITE_EVENT)

    def remove(self) -> None:
        """Take this channel out of its loop's poller."""
        self.loop.remove_channel(self)

    def _update(self) -> None:
        self.loop.update_channel(self)