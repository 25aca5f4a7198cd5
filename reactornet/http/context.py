"""Incremental parser for HTTP request heads."""

from __future__ import annotations

from enum import Enum

from reactornet.buffer import Buffer
from reactornet.http.request import HttpRequest, Version
from reactornet.timestamp import Timestamp

_CRLF = b"\r\n"


class ParseState(Enum):
    EXPECT_REQUEST_LINE = 0
    EXPECT_HEADERS = 1
    EXPECT_BODY = 2
    GOT_ALL = 3


class HttpContext:
    """Parses a request line and headers out of a buffer, across several reads if needed."""

    def __init__(self) -> None:
        self.state = ParseState.EXPECT_REQUEST_LINE
        self.request = HttpRequest()

    def parse_request(self, buf: Buffer, receive_time: Timestamp) -> bool:
        """Consume complete lines from ``buf``; return False on a malformed request line."""
        ok = True
        while True:
            if self.state is ParseState.EXPECT_REQUEST_LINE:
                data = bytes(buf.peek())
                end = data.find(_CRLF)
                if end < 0:
                    break
                if not self._process_request_line(data[:end].decode("latin-1")):
                    ok = False
                    break
                self.request.receive_time = receive_time
                buf.retrieve(end + 2)
                self.state = ParseState.EXPECT_HEADERS
            elif self.state is ParseState.EXPECT_HEADERS:
                data = bytes(buf.peek())
                end = data.find(_CRLF)
                if end < 0:
                    break
                name, colon, value = data[:end].decode("latin-1").partition(":")
                if colon:
                    self.request.add_header(name, value)
                else:
                    # A line without a colon (the blank line) ends the headers.
                    self.state = ParseState.GOT_ALL
                buf.retrieve(end + 2)
                if self.state is ParseState.GOT_ALL:
                    break
            else:
                break
        return ok

    def got_all(self) -> bool:
        return self.state is ParseState.GOT_ALL

    def reset(self) -> None:
        """Get ready for the next request."""
        self.state = ParseState.EXPECT_REQUEST_LINE
        self.request = HttpRequest()

    def _process_request_line(self, line: str) -> bool:
        # Format: METHOD URL VERSION, separated by single spaces.
        method, space, rest = line.partition(" ")
        if not space or not self.request.set_method(method):
            return False
        url, space, version = rest.partition(" ")
        if not space:
            return False
        path, question, query = url.partition("?")
        self.request.path = path
        if question:
            self.request.query = question + query
        if len(version) != 8 or not version.startswith("HTTP/1."):
            return False
        if version[-1] == "1":
            self.request.version = Version.HTTP11
        elif version[-1] == "0":
            self.request.version = Version.HTTP10
        else:
            return False
        return True