"""A TCP server: accepts connections in a base loop and spreads them over loop threads."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Optional

from reactornet.acceptor import Acceptor
from reactornet.event_loop import EventLoop
from reactornet.event_loop_thread_pool import EventLoopThreadPool
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.sockets import Socket, get_local_addr
from reactornet.tcp_connection import (
    ConnectionCallback,
    MessageCallback,
    TcpConnection,
    WriteCompleteCallback,
    default_connection_callback,
    default_message_callback,
)

ThreadInitCallback = Callable[[EventLoop], None]


class ServerOption(Enum):
    NO_REUSE_PORT = 0
    REUSE_PORT = 1


class TcpServer:
    """Listens on an address and creates a :class:`TcpConnection` per client."""

    def __init__(
        self,
        loop: EventLoop,
        listen_addr: InetAddress,
        name: str,
        option: ServerOption = ServerOption.NO_REUSE_PORT,
    ) -> None:
        if loop is None:
            raise ValueError("TcpServer needs a base event loop")
        self._loop = loop
        self._ip_port = listen_addr.to_ip_port()
        self._name = name
        self._acceptor = Acceptor(loop, listen_addr, option is ServerOption.REUSE_PORT)
        self._thread_pool = EventLoopThreadPool(loop, name)
        self.connection_callback: ConnectionCallback = default_connection_callback
        self.message_callback: MessageCallback = default_message_callback
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.thread_init_callback: Optional[ThreadInitCallback] = None
        self._started = 0
        self._started_lock = threading.Lock()
        self._next_conn_id = 1
        self._connections: dict[str, TcpConnection] = {}
        self._closed = False
        self._acceptor.new_connection_callback = self._new_connection

    @property
    def ip_port(self) -> str:
        return self._ip_port

    @property
    def name(self) -> str:
        return self._name

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def local_address(self) -> InetAddress:
        """The address the listening socket is bound to."""
        return self._acceptor.local_address

    @property
    def started(self) -> bool:
        return self._started > 0

    @property
    def connections(self) -> dict[str, TcpConnection]:
        """A snapshot of the live connections by name."""
        return dict(self._connections)

    def __enter__(self) -> TcpServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def set_thread_num(self, num_threads: int) -> None:
        """Set how many I/O loop threads to start (0: everything runs in the base loop)."""
        self._thread_pool.num_threads = num_threads

    def start(self) -> None:
        """Start the loop threads and begin listening; later calls do nothing."""
        with self._started_lock:
            first = self._started == 0
            self._started += 1
        if first:
            self._thread_pool.start(self.thread_init_callback)
            self._loop.run_in_loop(self._acceptor.listen)

    def close(self) -> None:
        """Destroy every connection, stop the loop threads and close the listening socket."""
        if self._closed:
            return
        self._closed = True
        log_info("TcpServer::~TcpServer [%s] destructing", self._name)
        connections = list(self._connections.values())
        self._connections.clear()
        for conn in connections:
            conn.loop.run_in_loop(conn.connect_destroyed)
        self._thread_pool.close()
        self._acceptor.close()

    def _new_connection(self, sock: Socket, peer_addr: InetAddress) -> None:
        io_loop = self._thread_pool.get_next_loop()
        conn_name = f"{self._name}-{self._ip_port}#{self._next_conn_id}"
        self._next_conn_id += 1
        log_info(
            "TcpServer::newConnection [%s] - new connection [%s] from %s",
            self._name,
            conn_name,
            peer_addr.to_ip_port(),
        )
        local_addr = get_local_addr(sock)
        conn = TcpConnection(io_loop, conn_name, sock, local_addr, peer_addr)
        self._connections[conn_name] = conn
        conn.connection_callback = self.connection_callback
        conn.message_callback = self.message_callback
        conn.write_complete_callback = self.write_complete_callback
        conn.close_callback = self._remove_connection
        io_loop.run_in_loop(conn.connect_established)

    def _remove_connection(self, conn: TcpConnection) -> None:
        self._loop.run_in_loop(lambda: self._remove_connection_in_loop(conn))

    def _remove_connection_in_loop(self, conn: TcpConnection) -> None:
        log_info(
            "TcpServer::removeConnectionInLoop [%s] - connection %s", self._name, conn.name
        )
        self._connections.pop(conn.name, None)
        conn.loop.queue_in_loop(conn.connect_destroyed)