"""A TCP client holding at most one connection, optionally reconnecting."""

from __future__ import annotations

import threading
from typing import Optional

from reactornet.connector import Connector
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.sockets import Socket, get_local_addr, get_peer_addr
from reactornet.tcp_connection import (
    ConnectionCallback,
    MessageCallback,
    TcpConnection,
    WriteCompleteCallback,
    default_connection_callback,
    default_message_callback,
)


class TcpClient:
    """Connects to one server and wraps the connection in a :class:`TcpConnection`."""

    def __init__(self, loop: EventLoop, server_addr: InetAddress, name: str) -> None:
        if loop is None:
            raise ValueError("TcpClient needs an event loop")
        self._loop = loop
        self._connector = Connector(loop, server_addr)
        self._name = name
        self._retry = False
        self._connect = True
        self._next_conn_id = 1
        self._mutex = threading.Lock()
        self._connection: Optional[TcpConnection] = None
        self._closed = False
        self.connection_callback: ConnectionCallback = default_connection_callback
        self.message_callback: MessageCallback = default_message_callback
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self._connector.new_connection_callback = self._new_connection
        log_info("TcpClient::TcpClient[%s] - connector %x", name, id(self._connector))

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def retry(self) -> bool:
        """Whether a lost connection is re-established."""
        return self._retry

    @property
    def connection(self) -> Optional[TcpConnection]:
        with self._mutex:
            return self._connection

    def __enter__(self) -> TcpClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def enable_retry(self) -> None:
        self._retry = True

    def connect(self) -> None:
        """Start connecting to the server."""
        log_info(
            "TcpClient::connect[%s] - connecting to %s",
            self._name,
            self._connector.server_address.to_ip_port(),
        )
        self._connect = True
        self._connector.start()

    def disconnect(self) -> None:
        """Shut down the writing side of the current connection, if any."""
        self._connect = False
        with self._mutex:
            if self._connection is not None:
                self._connection.shutdown()

    def stop(self) -> None:
        """Stop trying to connect."""
        self._connect = False
        self._connector.stop()

    def close(self) -> None:
        """Tear down the connection, or stop the connector if there is none."""
        if self._closed:
            return
        self._closed = True
        log_info("TcpClient::~TcpClient[%s] - connector %x", self._name, id(self._connector))
        with self._mutex:
            conn = self._connection
        if conn is not None:
            loop = self._loop

            def destroy(c: TcpConnection) -> None:
                loop.queue_in_loop(c.connect_destroyed)

            def install() -> None:
                conn.close_callback = destroy

            loop.run_in_loop(install)
            conn.force_close()
        else:
            self._connector.stop()

    def _new_connection(self, sock: Socket) -> None:
        peer_addr = get_peer_addr(sock)
        conn_name = f"{self._name}:{peer_addr.to_ip_port()}#{self._next_conn_id}"
        self._next_conn_id += 1
        local_addr = get_local_addr(sock)

        conn = TcpConnection(self._loop, conn_name, sock, local_addr, peer_addr)
        conn.connection_callback = self.connection_callback
        conn.message_callback = self.message_callback
        conn.write_complete_callback = self.write_complete_callback
        conn.close_callback = self._remove_connection
        with self._mutex:
            self._connection = conn
        conn.connect_established()

    def _remove_connection(self, conn: TcpConnection) -> None:
        with self._mutex:
            self._connection = None
        self._loop.queue_in_loop(conn.connect_destroyed)
        if self._retry and self._connect:
            log_info(
                "TcpClient::connect[%s] - Reconnecting to %s",
                self._name,
                self._connector.server_address.to_ip_port(),
            )
            self._connector.restart()