"""A parsed HTTP request."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from reactornet.timestamp import Timestamp

_WHITESPACE = " \t\n\v\f\r"


class Method(IntEnum):
    """HTTP request methods the server understands."""

    INVALID = 0
    GET = 1
    POST = 2
    HEAD = 3
    PUT = 4
    DELETE = 5


class Version(IntEnum):
    """HTTP protocol versions."""

    UNKNOWN = 0
    HTTP10 = 1
    HTTP11 = 2


_METHODS_BY_NAME = {m.name: m for m in Method if m is not Method.INVALID}


@dataclass
class HttpRequest:
    """Request line fields, headers and the time the request arrived."""

    method: Method = Method.INVALID
    version: Version = Version.UNKNOWN
    path: str = ""
    query: str = ""
    receive_time: Timestamp = field(default_factory=Timestamp)
    headers: dict[str, str] = field(default_factory=dict)

    def set_method(self, method: str) -> bool:
        """Set the method from its name; return whether the name is a known method."""
        self.method = _METHODS_BY_NAME.get(method, Method.INVALID)
        return self.method is not Method.INVALID

    def method_string(self) -> str:
        if self.method is Method.INVALID:
            return "UNKNOWN"
        return self.method.name

    def add_header(self, field: str, value: str) -> None:
        """Store a header; whitespace around the value is dropped."""
        self.headers[field] = value.strip(_WHITESPACE)

    def get_header(self, field: str) -> str:
        """Return the header's value, or an empty string if it is absent."""
        return self.headers.get(field, "")

    def swap(self, other: HttpRequest) -> None:
        """Exchange every field with ``other``."""
        self.method, other.method = other.method, self.method
        self.version, other.version = other.version, self.version
        self.path, other.path = other.path, self.path
        self.query, other.query = other.query, self.query
        self.headers, other.headers = other.headers, self.headers
        self.receive_time, other.receive_time = other.receive_time, self.receive_time