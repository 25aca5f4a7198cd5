"""One established TCP connection, driven by the event loop that owns it."""

from __future__ import annotations

import errno
import os
from enum import IntEnum
from typing import Any, Callable, Optional

from reactornet.buffer import Buffer
from reactornet.channel import Channel
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_error, log_info
from reactornet.sockets import Socket
from reactornet.timestamp import Timestamp

ConnectionCallback = Callable[["TcpConnection"], None]
CloseCallback = Callable[["TcpConnection"], None]
WriteCompleteCallback = Callable[["TcpConnection"], None]
MessageCallback = Callable[["TcpConnection", Buffer, Timestamp], None]
HighWaterMarkCallback = Callable[["TcpConnection", int], None]

DEFAULT_HIGH_WATER_MARK = 64 * 1024 * 1024


def default_connection_callback(conn: TcpConnection) -> None:
    """Log that a connection went up or down."""
    state = "up" if conn.connected() else "down"
    log_info(
        "%s -> %s is %s",
        conn.local_address.to_ip_port(),
        conn.peer_address.to_ip_port(),
        state,
    )


def default_message_callback(conn: TcpConnection, buf: Buffer, receive_time: Timestamp) -> None:
    """Discard everything that arrived."""
    buf.retrieve_all()


class ConnectionState(IntEnum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    DISCONNECTING = 3


class TcpConnection:
    """A connected socket with input and output buffers and user callbacks.

    All I/O happens in the thread of ``loop``; :meth:`send` and
    :meth:`shutdown` may be called from any thread.
    """

    def __init__(
        self,
        loop: EventLoop,
        name: str,
        sock: Socket,
        local_addr: InetAddress,
        peer_addr: InetAddress,
    ) -> None:
        if loop is None:
            raise ValueError("TcpConnection needs an event loop")
        self._loop = loop
        self._name = name
        self._state = ConnectionState.CONNECTING
        self._socket = sock
        self._fd = sock.fileno()
        self._channel = Channel(loop, self._fd)
        self._local_addr = local_addr
        self._peer_addr = peer_addr

        self.connection_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.high_water_mark_callback: Optional[HighWaterMarkCallback] = None
        self.close_callback: Optional[CloseCallback] = None
        self.high_water_mark = DEFAULT_HIGH_WATER_MARK
        self.input_buffer = Buffer()
        self.output_buffer = Buffer()
        self.context: Any = None

        self._channel.read_callback = self._handle_read
        self._channel.write_callback = self._handle_write
        self._channel.close_callback = self._handle_close
        self._channel.error_callback = self._handle_error

        log_info("TcpConnection::connector[%s] at fd=%d", name, self._fd)
        sock.set_keep_alive(True)

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def local_address(self) -> InetAddress:
        return self._local_addr

    @property
    def peer_address(self) -> InetAddress:
        return self._peer_addr

    @property
    def state(self) -> ConnectionState:
        return self._state

    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def disconnected(self) -> bool:
        return self._state == ConnectionState.DISCONNECTED

    def send(self, data: bytes | bytearray | memoryview | str | Buffer) -> None:
        """Send bytes, text (as UTF-8) or the readable contents of a :class:`Buffer`."""
        if self._state != ConnectionState.CONNECTED:
            return
        if isinstance(data, Buffer):
            if self._loop.is_in_loop_thread():
                self._send_in_loop(data.peek())
                data.retrieve_all()
                return
            payload = data.retrieve_all_as_bytes()
        elif isinstance(data, str):
            payload = data.encode("utf-8")
        else:
            payload = bytes(data)

        if self._loop.is_in_loop_thread():
            self._send_in_loop(payload)
        else:
            self._loop.run_in_loop(lambda: self._send_in_loop(payload))

    def shutdown(self) -> None:
        """Close the writing side once everything queued has been sent."""
        if self._state == ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTING
            self._loop.run_in_loop(self._shutdown_in_loop)

    def force_close(self) -> None:
        """Close the connection without waiting for pending output."""
        if self._state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTED):
            self._state = ConnectionState.DISCONNECTING
            self._loop.queue_in_loop(self._force_close_in_loop)

    def set_tcp_no_delay(self, on: bool) -> None:
        self._socket.set_tcp_no_delay(on)

    def connect_established(self) -> None:
        """Start reading and report the new connection."""
        self._state = ConnectionState.CONNECTED
        self._channel.tie(self)
        self._channel.enable_reading()
        if self.connection_callback is not None:
            self.connection_callback(self)

    def connect_destroyed(self) -> None:
        """Take the connection out of its loop and close the socket."""
        if self._state == ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTED
            self._channel.disable_all()
            if self.connection_callback is not None:
                self.connection_callback(self)
        self._channel.remove()
        self._socket.close()

    def _send_in_loop(self, data: bytes) -> None:
        if self._state == ConnectionState.DISCONNECTED:
            log_error("disconnected, give up writing!")
            return

        nwrote = 0
        remaining = len(data)
        fault_error = False

        if not self._channel.is_writing() and self.output_buffer.readable_bytes() == 0:
            try:
                nwrote = os.write(self._fd, data)
            except BlockingIOError:
                nwrote = 0
            except OSError as exc:
                nwrote = 0
                log_error("TcpConnection::sendInLoop error: %d", exc.errno or 0)
                if exc.errno in (errno.EPIPE, errno.ECONNRESET):
                    fault_error = True
            else:
                remaining = len(data) - nwrote
                if remaining == 0 and self.write_complete_callback is not None:
                    callback = self.write_complete_callback
                    self._loop.queue_in_loop(lambda: callback(self))

        if not fault_error and remaining > 0:
            old_len = self.output_buffer.readable_bytes()
            total = old_len + remaining
            if (
                total >= self.high_water_mark
                and old_len < self.high_water_mark
                and self.high_water_mark_callback is not None
            ):
                callback = self.high_water_mark_callback
                self._loop.queue_in_loop(lambda: callback(self, total))
            self.output_buffer.append(memoryview(data)[nwrote:])
            if not self._channel.is_writing():
                self._channel.enable_writing()

    def _shutdown_in_loop(self) -> None:
        if not self._channel.is_writing():
            self._socket.shutdown_write()

    def _force_close_in_loop(self) -> None:
        if self._state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING):
            self._handle_close()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            n = self.input_buffer.read_fd(self._fd)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as exc:
            log_error("TcpConnection::handleRead error: %d", exc.errno or 0)
            self._handle_error()
            return
        if n > 0:
            if self.message_callback is not None:
                self.message_callback(self, self.input_buffer, receive_time)
        else:
            self._handle_close()

    def _handle_write(self) -> None:
        if not self._channel.is_writing():
            log_error("TcpConnection fd = %d is down, no more writing", self._fd)
            return
        try:
            n = self.output_buffer.write_fd(self._fd)
        except OSError as exc:
            log_error("TcpConnection::handleWrite error: %d", exc.errno or 0)
            return
        if n <= 0:
            log_error("TcpConnection::handleWrite error")
            return
        self.output_buffer.retrieve(n)
        if self.output_buffer.readable_bytes() == 0:
            self._channel.disable_writing()
            if self.write_complete_callback is not None:
                callback = self.write_complete_callback
                self._loop.queue_in_loop(lambda: callback(self))
            if self._state == ConnectionState.DISCONNECTING:
                self._shutdown_in_loop()

    def _handle_close(self) -> None:
        log_info("TcpConnection::handleClose fd = %d state = %d", self._fd, int(self._state))
        self._state = ConnectionState.DISCONNECTED
        self._channel.disable_all()
        if self.connection_callback is not None:
            self.connection_callback(self)
        if self.close_callback is not None:
            self.close_callback(self)

    def _handle_error(self) -> None:
        err = self._socket.get_socket_error()
        log_error("TcpConnection::handleError name: %s - SO_ERROR: %d", self._name, err)