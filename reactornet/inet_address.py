"""IPv4 socket addresses."""

from __future__ import annotations

import socket
from dataclasses import dataclass


@dataclass(frozen=True)
class InetAddress:
    """An IPv4 address and port; the IP is kept in dotted-decimal form."""

    port: int = 9001
    ip: str = "127.0.0.1"

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")
        try:
            packed = socket.inet_aton(self.ip)
        except OSError as exc:
            raise ValueError(f"invalid IPv4 address: {self.ip!r}") from exc
        object.__setattr__(self, "ip", socket.inet_ntoa(packed))

    @classmethod
    def from_sockaddr(cls, addr: tuple) -> InetAddress:
        """Build from a ``(host, port)`` pair as returned by the socket module."""
        return cls(addr[1], addr[0])

    def to_ip(self) -> str:
        return self.ip

    def to_ip_port(self) -> str:
        return f"{self.ip}:{self.port}"

    def to_port(self) -> int:
        return self.port

    def sockaddr(self) -> tuple[str, int]:
        """Return the ``(host, port)`` pair the socket module expects."""
        return (self.ip, self.port)

    def __str__(self) -> str:
        return self.to_ip_port()