"""Building HTTP responses."""

from __future__ import annotations

from enum import IntEnum

from reactornet.buffer import Buffer


class StatusCode(IntEnum):
    UNKNOWN = 0
    OK = 200
    MOVED_PERMANENTLY = 301
    BAD_REQUEST = 400
    NOT_FOUND = 404


class HttpResponse:
    """Status, headers and body of a response; ``close_connection`` ends the connection after it."""

    def __init__(self, close_connection: bool) -> None:
        self.headers: dict[str, str] = {}
        self.status_code = StatusCode.UNKNOWN
        self.status_message = ""
        self.body: bytes | str = b""
        self.close_connection = close_connection

    def set_content_type(self, content_type: str) -> None:
        self.add_header("Content-Type", content_type)

    def add_header(self, key: str, value: str) -> None:
        self.headers[key] = value

    def append_to_buffer(self, output: Buffer) -> None:
        """Write the whole response message into ``output``."""
        body = self.body.encode("utf-8") if isinstance(self.body, str) else bytes(self.body)
        lines = [f"HTTP/1.1 {int(self.status_code)} {self.status_message}\r\n"]
        if self.close_connection:
            lines.append("Connection: close\r\n")
        else:
            lines.append(f"Content-Length: {len(body)}\r\n")
            lines.append("Connection: Keep-Alive\r\n")
        lines.extend(f"{key}: {value}\r\n" for key, value in self.headers.items())
        lines.append("\r\n")
        output.append("".join(lines).encode("utf-8"))
        output.append(body)