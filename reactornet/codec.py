"""Message framing with a 4-byte big-endian length header."""

from __future__ import annotations

import struct
from typing import Any, Callable

from reactornet.buffer import Buffer
from reactornet.logger import log_error, log_info
from reactornet.timestamp import Timestamp

HEADER_LEN = 4
MAX_MESSAGE_LEN = 65535
_HEADER = struct.Struct(">i")

StringMessageCallback = Callable[[Any, bytes, Timestamp], None]


def encode(message: bytes | bytearray | str) -> bytes:
    """Return ``message`` (text as UTF-8) preceded by its length as a big-endian int32."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    buf = Buffer()
    buf.append(message)
    buf.prepend(_HEADER.pack(len(message)))
    return buf.retrieve_all_as_bytes()


class LengthHeaderCodec:
    """Splits a byte stream into length-prefixed messages and frames outgoing ones."""

    def __init__(self, callback: StringMessageCallback) -> None:
        self.message_callback = callback

    def send(self, conn: Any, message: bytes | bytearray | str) -> None:
        """Frame ``message`` and send it on ``conn``."""
        conn.send(encode(message))

    def on_message(self, conn: Any, buf: Buffer, receive_time: Timestamp) -> None:
        """Deliver every complete message in ``buf``; shut ``conn`` down on a bad length."""
        while buf.readable_bytes() >= HEADER_LEN:
            (length,) = _HEADER.unpack(buf.peek()[:HEADER_LEN])
            if length > MAX_MESSAGE_LEN or length < 0:
                log_error("Invalid length %d", length)
                conn.shutdown()
                break
            if buf.readable_bytes() < length + HEADER_LEN:
                break
            log_info("Codec receive length %d", length)
            buf.retrieve(HEADER_LEN)
            message = buf.retrieve_as_bytes(length)
            self.message_callback(conn, message, receive_time)