"""A chat server: every length-framed message is relayed to all connected clients."""

from __future__ import annotations

import argparse
import os
import threading

from reactornet.codec import LengthHeaderCodec
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.tcp_connection import TcpConnection
from reactornet.tcp_server import TcpServer
from reactornet.timestamp import Timestamp


class ChatServer:
    """Keeps the set of live connections and broadcasts each message to them."""

    def __init__(self, loop: EventLoop, listen_addr: InetAddress) -> None:
        self.server = TcpServer(loop, listen_addr, "ChatServer")
        self.codec = LengthHeaderCodec(self._on_string_message)
        self._lock = threading.Lock()
        self._connections: set[TcpConnection] = set()
        self.server.connection_callback = self._on_connection
        self.server.message_callback = self.codec.on_message

    @property
    def connections(self) -> set[TcpConnection]:
        """A snapshot of the connected clients."""
        with self._lock:
            return set(self._connections)

    def __enter__(self) -> ChatServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self) -> None:
        self.server.start()

    def close(self) -> None:
        self.server.close()

    def _on_connection(self, conn: TcpConnection) -> None:
        state = "up" if conn.connected() else "down"
        log_info(
            "%s -> %s is %s",
            conn.local_address.to_ip_port(),
            conn.peer_address.to_ip_port(),
            state,
        )
        with self._lock:
            if conn.connected():
                self._connections.add(conn)
            else:
                self._connections.discard(conn)

    def _on_string_message(self, conn: TcpConnection, message: bytes, receive_time: Timestamp) -> None:
        for peer in self.connections:
            self.codec.send(peer, message)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="reactornet-chat-server", description="Run a chat server.")
    parser.add_argument("ip", help="address to listen on")
    parser.add_argument("port", type=int, help="port to listen on")
    args = parser.parse_args(argv)

    log_info("pid = %d", os.getpid())
    with EventLoop() as loop:
        with ChatServer(loop, InetAddress(args.port, args.ip)) as server:
            server.start()
            loop.loop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())