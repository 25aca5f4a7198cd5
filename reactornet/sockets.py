"""Thin ownership wrapper around a TCP socket and address helpers."""

from __future__ import annotations

import socket

from reactornet.inet_address import InetAddress
from reactornet.logger import log_error

_LISTEN_BACKLOG = 1024


class Socket:
    """Owns one TCP socket; closes it on :meth:`close` or when used as a context manager."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock

    @classmethod
    def create_nonblocking(cls) -> Socket:
        """Create a non-blocking, non-inheritable IPv4 TCP socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        sock.setblocking(False)
        return cls(sock)

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fileno(self) -> int:
        return self._sock.fileno()

    def bind_address(self, local_addr: InetAddress) -> None:
        try:
            self._sock.bind(local_addr.sockaddr())
        except OSError:
            log_error("bind sockfd: %d fail", self.fileno())
            raise

    def listen(self) -> None:
        try:
            self._sock.listen(_LISTEN_BACKLOG)
        except OSError:
            log_error("listen sockfd: %d fail", self.fileno())
            raise

    def accept(self) -> tuple[Socket, InetAddress]:
        """Accept one connection as a non-blocking socket plus its peer address.

        Raises :class:`BlockingIOError` when nothing is pending.
        """
        conn, addr = self._sock.accept()
        conn.setblocking(False)
        return Socket(conn), InetAddress.from_sockaddr(addr)

    def connect(self, server_addr: InetAddress) -> None:
        """Start connecting; a non-blocking socket raises :class:`BlockingIOError` while in progress."""
        self._sock.connect(server_addr.sockaddr())

    def shutdown_write(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError:
            log_error("shutdownWrite error")

    def _set_flag(self, level: int, option: int, on: bool) -> None:
        try:
            self._sock.setsockopt(level, option, 1 if on else 0)
        except OSError:
            log_error("setsockopt(%d, %d) failed on fd %d", level, option, self.fileno())

    def set_tcp_no_delay(self, on: bool) -> None:
        self._set_flag(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        option = getattr(socket, "SO_REUSEPORT", None)
        if option is not None:
            self._set_flag(socket.SOL_SOCKET, option, on)
        elif on:
            log_error("SO_REUSEPORT is not supported")

    def set_keep_alive(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def get_socket_error(self) -> int:
        """Return the pending SO_ERROR value (0 when there is none)."""
        try:
            return self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            return exc.errno or 0

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError:
            log_error("Socket::close")


def _raw(sock: Socket | socket.socket) -> socket.socket:
    return sock._sock if isinstance(sock, Socket) else sock


def get_local_addr(sock: Socket | socket.socket) -> InetAddress:
    """Return the address the socket is bound to (0.0.0.0:0 if it cannot be read)."""
    try:
        return InetAddress.from_sockaddr(_raw(sock).getsockname())
    except OSError:
        log_error("Socket::getLocalAddr")
        return InetAddress(0, "0.0.0.0")


def get_peer_addr(sock: Socket | socket.socket) -> InetAddress:
    """Return the remote address of a connected socket (0.0.0.0:0 if it has none)."""
    try:
        return InetAddress.from_sockaddr(_raw(sock).getpeername())
    except OSError:
        log_error("Socket::getPeerAddr")
        return InetAddress(0, "0.0.0.0")


def is_self_connect(sock: Socket | socket.socket) -> bool:
    """Tell whether the socket ended up connected to itself."""
    return get_local_addr(sock) == get_peer_addr(sock)