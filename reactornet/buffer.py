"""A growable byte buffer with a cheap prepend area, used for socket I/O.

Layout::

    | prependable | readable | writable |
    0   <=   reader   <=   writer   <=  size
"""

from __future__ import annotations

import os

_EXTRA_READ = 65536


class Buffer:
    """Byte buffer with separate read and write positions."""

    CHEAP_PREPEND = 8
    INITIAL_SIZE = 1024
    CRLF = b"\r\n"

    def __init__(self, initial_size: int = INITIAL_SIZE) -> None:
        self._buffer = bytearray(self.CHEAP_PREPEND + initial_size)
        self._reader = self.CHEAP_PREPEND
        self._writer = self.CHEAP_PREPEND

    def __len__(self) -> int:
        return self.readable_bytes()

    def readable_bytes(self) -> int:
        return self._writer - self._reader

    def writable_bytes(self) -> int:
        return len(self._buffer) - self._writer

    def prependable_bytes(self) -> int:
        return self._reader

    def peek(self) -> bytes:
        """Return a copy of the readable bytes without consuming them."""
        return bytes(self._buffer[self._reader:self._writer])

    def retrieve(self, length: int) -> None:
        """Consume ``length`` readable bytes (all of them if ``length`` reaches the end)."""
        if length < self.readable_bytes():
            self._reader += length
        else:
            self.retrieve_all()

    def retrieve_all(self) -> None:
        self._reader = self.CHEAP_PREPEND
        self._writer = self.CHEAP_PREPEND

    def retrieve_as_bytes(self, length: int) -> bytes:
        result = bytes(self._buffer[self._reader:self._reader + length])
        self.retrieve(length)
        return result

    def retrieve_all_as_bytes(self) -> bytes:
        return self.retrieve_as_bytes(self.readable_bytes())

    def ensure_writable_bytes(self, length: int) -> None:
        if self.writable_bytes() < length:
            self._make_space(length)

    def append(self, data: bytes | bytearray | memoryview | str) -> None:
        """Append bytes (text is encoded as UTF-8) after the readable area."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        data = bytes(data)
        self.ensure_writable_bytes(len(data))
        self._buffer[self._writer:self._writer + len(data)] = data
        self._writer += len(data)

    def prepend(self, data: bytes | bytearray | memoryview) -> None:
        """Put bytes in front of the readable area, using the prepend space."""
        data = bytes(data)
        if len(data) > self.prependable_bytes():
            raise ValueError(
                f"cannot prepend {len(data)} bytes, only {self.prependable_bytes()} available"
            )
        self._reader -= len(data)
        self._buffer[self._reader:self._reader + len(data)] = data

    def find_crlf(self, start: int = 0) -> int | None:
        """Return the offset of the first CRLF at or after ``start`` in the readable data."""
        if not 0 <= start <= self.readable_bytes():
            raise ValueError(f"start {start} outside readable data")
        index = self._buffer.find(self.CRLF, self._reader + start, self._writer)
        return None if index < 0 else index - self._reader

    def read_fd(self, fd: int) -> int:
        """Read what ``fd`` has into the buffer and return the byte count.

        Reads into the free space plus a 64 KiB side buffer in one call;
        raises :class:`OSError` on failure and returns 0 at end of file.
        """
        writable = self.writable_bytes()
        extra = bytearray(_EXTRA_READ)
        view = memoryview(self._buffer)
        tail = view[self._writer:]
        try:
            buffers = [tail, extra] if writable < _EXTRA_READ else [tail]
            n = os.readv(fd, buffers)
        finally:
            tail.release()
            view.release()
        if n <= writable:
            self._writer += n
        else:
            self._writer = len(self._buffer)
            self.append(extra[:n - writable])
        return n

    def write_fd(self, fd: int) -> int:
        """Write readable bytes to ``fd``; return the count written (nothing is consumed)."""
        return os.write(fd, self.peek())

    def _make_space(self, length: int) -> None:
        if self.writable_bytes() + self.prependable_bytes() < length + self.CHEAP_PREPEND:
            self._buffer.extend(bytes(self._writer + length - len(self._buffer)))
        else:
            readable = self.readable_bytes()
            start = self.CHEAP_PREPEND
            self._buffer[start:start + readable] = self._buffer[self._reader:self._writer]
            self._reader = start
            self._writer = start + readable