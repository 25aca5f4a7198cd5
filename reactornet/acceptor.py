"""Listens on a socket and hands each accepted connection to a callback."""

from __future__ import annotations

import errno
from typing import Callable, Optional

from reactornet.channel import Channel
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_error
from reactornet.sockets import Socket, get_local_addr
from reactornet.timestamp import Timestamp

NewConnectionCallback = Callable[[Socket, InetAddress], None]


class Acceptor:
    """Owns the listening socket of a server; runs in the server's base loop."""

    def __init__(self, loop: EventLoop, listen_addr: InetAddress, reuse_port: bool) -> None:
        self.loop = loop
        self.listening = False
        self.new_connection_callback: Optional[NewConnectionCallback] = None
        self._socket = Socket.create_nonblocking()
        try:
            self._socket.set_reuse_addr(True)
            self._socket.set_reuse_port(reuse_port)
            self._socket.bind_address(listen_addr)
        except BaseException:
            self._socket.close()
            raise
        self._channel = Channel(loop, self._socket.fileno())
        self._channel.read_callback = self._handle_read

    @property
    def local_address(self) -> InetAddress:
        """The address actually bound (useful after binding port 0)."""
        return get_local_addr(self._socket)

    def __enter__(self) -> Acceptor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def listen(self) -> None:
        """Start listening and watch the socket for new connections."""
        self.listening = True
        self._socket.listen()
        self._channel.enable_reading()

    def close(self) -> None:
        """Stop watching the socket and close it."""
        self._channel.disable_all()
        self._channel.remove()
        self._socket.close()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            conn, peer_addr = self._socket.accept()
        except (BlockingIOError, InterruptedError):
            return
        except OSError as exc:
            log_error("Acceptor::handleRead accept error: %d", exc.errno or 0)
            if exc.errno == errno.EMFILE:
                log_error("Acceptor::handleRead accept reached limit")
            return
        if self.new_connection_callback is not None:
            self.new_connection_callback(conn, peer_addr)
        else:
            conn.close()