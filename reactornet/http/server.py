"""A minimal HTTP server on top of the TCP server."""

from __future__ import annotations

from typing import Callable

from reactornet.buffer import Buffer
from reactornet.event_loop import EventLoop
from reactornet.http.context import HttpContext
from reactornet.http.request import HttpRequest, Version
from reactornet.http.response import HttpResponse, StatusCode
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.tcp_connection import TcpConnection
from reactornet.tcp_server import ServerOption, TcpServer
from reactornet.timestamp import Timestamp

HttpCallback = Callable[[HttpRequest, HttpResponse], None]

_BAD_REQUEST = b"HTTP/1.1 400 Bad Request\r\n\r\n"


def default_http_callback(request: HttpRequest, response: HttpResponse) -> None:
    """Answer every request with 404 and close the connection."""
    response.status_code = StatusCode.NOT_FOUND
    response.status_message = "Not Found"
    response.close_connection = True


class HttpServer:
    """Parses requests on each connection and answers them through ``http_callback``."""

    def __init__(
        self,
        loop: EventLoop,
        listen_addr: InetAddress,
        name: str,
        option: ServerOption = ServerOption.NO_REUSE_PORT,
    ) -> None:
        self.tcp_server = TcpServer(loop, listen_addr, name, option)
        self.http_callback: HttpCallback = default_http_callback
        self.tcp_server.connection_callback = self._on_connection
        self.tcp_server.message_callback = self._on_message

    @property
    def loop(self) -> EventLoop:
        return self.tcp_server.loop

    @property
    def local_address(self) -> InetAddress:
        return self.tcp_server.local_address

    def __enter__(self) -> HttpServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def set_thread_num(self, num_threads: int) -> None:
        self.tcp_server.set_thread_num(num_threads)

    def start(self) -> None:
        log_info(
            "HttpServer[%s] starts listening on %s",
            self.tcp_server.name,
            self.tcp_server.ip_port,
        )
        self.tcp_server.start()

    def close(self) -> None:
        self.tcp_server.close()

    def _on_connection(self, conn: TcpConnection) -> None:
        if conn.connected():
            conn.context = HttpContext()

    def _on_message(self, conn: TcpConnection, buf: Buffer, receive_time: Timestamp) -> None:
        context = conn.context
        if not isinstance(context, HttpContext):
            context = conn.context = HttpContext()
        if not context.parse_request(buf, receive_time):
            conn.send(_BAD_REQUEST)
            conn.shutdown()
        if context.got_all():
            self._on_request(conn, context.request)
            context.reset()

    def _on_request(self, conn: TcpConnection, request: HttpRequest) -> None:
        connection = request.get_header("Connection")
        # HTTP/1.0 closes unless asked to keep alive; HTTP/1.1 keeps alive unless asked to close.
        close = connection == "close" or (
            request.version is Version.HTTP10 and connection != "Keep-Alive"
        )
        response = HttpResponse(close)
        self.http_callback(request, response)
        buf = Buffer()
        response.append_to_buffer(buf)
        conn.send(buf)
        if response.close_connection:
            conn.shutdown()