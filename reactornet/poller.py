"""I/O multiplexing: watches channels and reports the ones that are ready."""

from __future__ import annotations

import os
import select
from enum import Enum
from typing import Any

from reactornet.channel import Channel, Event
from reactornet.logger import log_debug, log_error, log_info
from reactornet.timestamp import Timestamp

USE_POLL_ENV = "REACTORNET_USE_POLL"

# Registration state kept in Channel.index.
_NEW = -1
_ADDED = 1
_DELETED = 2

_INIT_EVENT_LIST_SIZE = 16
_FLAGS = (Event.IN, Event.PRI, Event.OUT, Event.ERR, Event.HUP)


class _Op(Enum):
    ADD = "add"
    MOD = "mod"
    DEL = "del"


def _bit_table(prefix: str) -> tuple[tuple[Event, int], ...]:
    return tuple((flag, getattr(select, prefix + flag.name)) for flag in _FLAGS)


class _EpollBackend:
    kind = "epoll"

    def __init__(self) -> None:
        self._epoll = select.epoll()
        self.bits = _bit_table("EPOLL")
        self._max_events = _INIT_EVENT_LIST_SIZE

    def register(self, fd: int, mask: int) -> None:
        self._epoll.register(fd, mask)

    def modify(self, fd: int, mask: int) -> None:
        self._epoll.modify(fd, mask)

    def unregister(self, fd: int) -> None:
        self._epoll.unregister(fd)

    def wait(self, timeout_ms: int) -> list[tuple[int, int]]:
        timeout = -1 if timeout_ms < 0 else timeout_ms / 1000.0
        ready = self._epoll.poll(timeout, self._max_events)
        # The event list was full: more may be ready than fit, so grow it.
        if len(ready) == self._max_events:
            self._max_events *= 2
        return ready

    def close(self) -> None:
        self._epoll.close()


class _PollBackend:
    kind = "poll"

    def __init__(self) -> None:
        self._poll = select.poll()
        self.bits = _bit_table("POLL")

    def register(self, fd: int, mask: int) -> None:
        self._poll.register(fd, mask)

    def modify(self, fd: int, mask: int) -> None:
        self._poll.modify(fd, mask)

    def unregister(self, fd: int) -> None:
        try:
            self._poll.unregister(fd)
        except KeyError as exc:
            raise FileNotFoundError(f"fd {fd} is not registered") from exc

    def wait(self, timeout_ms: int) -> list[tuple[int, int]]:
        return self._poll.poll(None if timeout_ms < 0 else timeout_ms)

    def close(self) -> None:
        self._poll = select.poll()


class Poller:
    """Keeps a map of fd to channel and asks the OS which of them are ready."""

    def __init__(self, loop: Any, use_poll: bool = False) -> None:
        self.owner_loop = loop
        self.channels: dict[int, Channel] = {}
        if use_poll or not hasattr(select, "epoll"):
            if not hasattr(select, "poll"):
                raise RuntimeError("no poll facility available on this platform")
            self._backend = _PollBackend()
        else:
            self._backend = _EpollBackend()

    @property
    def kind(self) -> str:
        """Name of the OS facility in use: ``"epoll"`` or ``"poll"``."""
        return self._backend.kind

    def __enter__(self) -> Poller:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        """Wait up to ``timeout_ms`` (negative: forever); return the time and the ready channels."""
        log_debug("func = poll => fd total count: %d", len(self.channels))
        try:
            ready = self._backend.wait(timeout_ms)
        except InterruptedError:
            return Timestamp.now(), []
        except OSError as exc:
            log_error("Poller::poll() error: %d", exc.errno or 0)
            return Timestamp.now(), []

        now = Timestamp.now()
        active: list[Channel] = []
        if ready:
            log_info("%d events happened", len(ready))
            for fd, mask in ready:
                channel = self.channels.get(fd)
                if channel is None:
                    continue
                channel.revents = self._from_native(mask)
                active.append(channel)
        else:
            log_debug("poll timeout!")
        return now, active

    def update_channel(self, channel: Channel) -> None:
        """Register, modify or suspend a channel according to its events."""
        index = channel.index
        log_info(
            "func = update_channel => fd = %d, events = %d, index = %d",
            channel.fd,
            int(channel.events),
            index,
        )
        if index in (_NEW, _DELETED):
            if index == _NEW:
                self.channels[channel.fd] = channel
            channel.index = _ADDED
            self._update(_Op.ADD, channel)
        elif channel.is_none_event():
            self._update(_Op.DEL, channel)
            channel.index = _DELETED
        else:
            self._update(_Op.MOD, channel)

    def remove_channel(self, channel: Channel) -> None:
        """Forget a channel entirely."""
        log_debug("func = remove_channel => fd = %d", channel.fd)
        self.channels.pop(channel.fd, None)
        if channel.index == _ADDED:
            self._update(_Op.DEL, channel)
        channel.index = _NEW

    def has_channel(self, channel: Channel) -> bool:
        return self.channels.get(channel.fd) is channel

    def close(self) -> None:
        self._backend.close()

    def _update(self, op: _Op, channel: Channel) -> None:
        fd = channel.fd
        try:
            if op is _Op.ADD:
                self._backend.register(fd, self._to_native(channel.events))
            elif op is _Op.MOD:
                self._backend.modify(fd, self._to_native(channel.events))
            else:
                self._backend.unregister(fd)
        except OSError as exc:
            if op is _Op.DEL:
                log_error("poller del error: %d", exc.errno or 0)
            else:
                log_error("poller add/mod error: %d", exc.errno or 0)
                raise

    def _to_native(self, events: Event) -> int:
        mask = 0
        for flag, native in self._backend.bits:
            if events & flag:
                mask |= native
        return mask

    def _from_native(self, mask: int) -> Event:
        events = Event.NONE
        for flag, native in self._backend.bits:
            if mask & native:
                events |= flag
        return events


def new_default_poller(loop: Any) -> Poller:
    """Return the poller an event loop uses; set REACTORNET_USE_POLL to force poll(2)."""
    return Poller(loop, use_poll=USE_POLL_ENV in os.environ)