"""An echo server: sends back what it receives, then closes the writing side."""

from __future__ import annotations

import argparse

from reactornet.buffer import Buffer
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.tcp_connection import TcpConnection
from reactornet.tcp_server import TcpServer
from reactornet.timestamp import Timestamp


class EchoServer:
    """Echoes each message back and then shuts the connection down."""

    def __init__(
        self, loop: EventLoop, addr: InetAddress, name: str, num_threads: int = 6
    ) -> None:
        self.loop = loop
        self.server = TcpServer(loop, addr, name)
        self.server.connection_callback = self._on_connection
        self.server.message_callback = self._on_message
        self.server.set_thread_num(num_threads)

    def __enter__(self) -> EchoServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self) -> None:
        self.server.start()

    def close(self) -> None:
        self.server.close()

    def _on_connection(self, conn: TcpConnection) -> None:
        state = "UP" if conn.connected() else "DOWN"
        log_info("Connection %s : %s", state, conn.peer_address.to_ip_port())

    def _on_message(self, conn: TcpConnection, buf: Buffer, receive_time: Timestamp) -> None:
        conn.send(buf.retrieve_all_as_bytes())
        conn.shutdown()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="reactornet-echo", description="Run an echo server.")
    parser.add_argument("--ip", default="127.0.0.1", help="address to listen on")
    parser.add_argument("--port", type=int, default=7890, help="port to listen on")
    parser.add_argument("--threads", type=int, default=6, help="number of I/O threads")
    args = parser.parse_args(argv)

    with EventLoop() as loop:
        with EchoServer(loop, InetAddress(args.port, args.ip), "EchoServer", args.threads) as server:
            server.start()
            loop.loop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())