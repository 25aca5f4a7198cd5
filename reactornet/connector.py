"""Active connection establishment with exponential back-off on failure."""

from __future__ import annotations

import errno
from enum import IntEnum
from typing import Callable, Optional

from reactornet.channel import Channel
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_debug, log_error, log_info
from reactornet.sockets import Socket, is_self_connect

NewConnectionCallback = Callable[[Socket], None]

INIT_RETRY_DELAY_MS = 500
MAX_RETRY_DELAY_MS = 30 * 1000

_CONNECTING_ERRNOS = frozenset({0, errno.EINPROGRESS, errno.EINTR, errno.EISCONN})
_RETRY_ERRNOS = frozenset(
    {
        errno.EAGAIN,
        errno.EADDRINUSE,
        errno.EADDRNOTAVAIL,
        errno.ECONNREFUSED,
        errno.ENETUNREACH,
    }
)
_FATAL_ERRNOS = frozenset(
    {
        errno.EACCES,
        errno.EPERM,
        errno.EAFNOSUPPORT,
        errno.EALREADY,
        errno.EBADF,
        errno.EFAULT,
        errno.ENOTSOCK,
    }
)


class ConnectorState(IntEnum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2


def _try_connect(sock: Socket, server_addr: InetAddress) -> int:
    """Start a non-blocking connect and return the resulting errno (0 on success)."""
    try:
        result = sock.connect(server_addr)
    except OSError as exc:
        return exc.errno or 0
    return result if isinstance(result, int) else 0


class Connector:
    """Connects a socket to a server and hands it over once the connection is up.

    A failed attempt is retried after a delay that starts at 500 ms and
    doubles up to 30 s. The connected socket is passed to
    ``new_connection_callback``, which takes ownership of it.
    """

    def __init__(self, loop: EventLoop, server_addr: InetAddress) -> None:
        self._loop = loop
        self._server_addr = server_addr
        self._connect = False
        self._state = ConnectorState.DISCONNECTED
        self._retry_delay_ms = INIT_RETRY_DELAY_MS
        self._channel: Optional[Channel] = None
        self._socket: Optional[Socket] = None
        self.new_connection_callback: Optional[NewConnectionCallback] = None
        log_debug("connector[%x]", id(self))

    @property
    def server_address(self) -> InetAddress:
        return self._server_addr

    @property
    def state(self) -> ConnectorState:
        return self._state

    @property
    def retry_delay_ms(self) -> int:
        """Delay before the next retry, in milliseconds."""
        return self._retry_delay_ms

    def start(self) -> None:
        """Begin connecting; may be called from any thread."""
        self._connect = True
        self._loop.run_in_loop(self._start_in_loop)

    def restart(self) -> None:
        """Start over with the initial retry delay; must be called in the loop thread."""
        self._state = ConnectorState.DISCONNECTED
        self._retry_delay_ms = INIT_RETRY_DELAY_MS
        self._connect = True
        self._start_in_loop()

    def stop(self) -> None:
        """Give up connecting; may be called from any thread."""
        self._connect = False
        self._loop.queue_in_loop(self._stop_in_loop)

    def _start_in_loop(self) -> None:
        if self._connect:
            self._do_connect()
        else:
            log_debug("don't connect")

    def _stop_in_loop(self) -> None:
        if self._state == ConnectorState.CONNECTING:
            self._state = ConnectorState.DISCONNECTED
            self._remove_and_reset_channel()
            self._retry()

    def _do_connect(self) -> None:
        sock = Socket.create_nonblocking()
        self._socket = sock
        err = _try_connect(sock, self._server_addr)
        if err in _CONNECTING_ERRNOS:
            self._connecting(sock)
        elif err in _RETRY_ERRNOS:
            self._retry()
        elif err in _FATAL_ERRNOS:
            log_error("connect error in Connector::startInLoop errno=%d", err)
            self._close_socket()
        else:
            log_error("Unexpected error in Connector::startInLoop errno=%d", err)
            self._close_socket()

    def _connecting(self, sock: Socket) -> None:
        self._state = ConnectorState.CONNECTING
        channel = Channel(self._loop, sock.fileno())
        channel.write_callback = self._handle_write
        channel.error_callback = self._handle_error
        self._channel = channel
        channel.enable_writing()

    def _retry(self) -> None:
        self._close_socket()
        self._state = ConnectorState.DISCONNECTED
        if self._connect:
            log_info(
                "Connector::retry - Retry connecting to %s in %d milliseconds.",
                self._server_addr.to_ip_port(),
                self._retry_delay_ms,
            )
            self._loop.run_after(self._retry_delay_ms / 1000.0, self._start_in_loop)
            self._retry_delay_ms = min(self._retry_delay_ms * 2, MAX_RETRY_DELAY_MS)
        else:
            log_debug("don't connect")

    def _handle_write(self) -> None:
        log_info("Connector::handleWrite state=%d", int(self._state))
        if self._state != ConnectorState.CONNECTING:
            return
        self._remove_and_reset_channel()
        sock = self._socket
        if sock is None:
            return
        err = sock.get_socket_error()
        if err:
            log_error("Connector::handleWrite - SO_ERROR = %d", err)
            self._retry()
        elif is_self_connect(sock):
            log_error("Connector::handleWrite - Self connect")
            self._retry()
        else:
            self._state = ConnectorState.CONNECTED
            # The socket now belongs to whoever receives it.
            self._socket = None
            if self._connect and self.new_connection_callback is not None:
                self.new_connection_callback(sock)
            else:
                sock.close()

    def _handle_error(self) -> None:
        log_error("Connector::handleError state=%d", int(self._state))
        if self._state == ConnectorState.CONNECTING:
            self._remove_and_reset_channel()
            err = self._socket.get_socket_error() if self._socket is not None else 0
            log_info("SO_ERROR = %d", err)
            self._retry()

    def _remove_and_reset_channel(self) -> None:
        channel = self._channel
        if channel is None:
            return
        channel.disable_all()
        channel.remove()

        def reset() -> None:
            if self._channel is channel:
                self._channel = None

        # Dropped later: the channel may still be dispatching this very event.
        self._loop.queue_in_loop(reset)

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None