import select
import socket

import pytest

from reactornet.inet_address import InetAddress
from reactornet.sockets import (
    Socket,
    get_local_addr,
    get_peer_addr,
    is_self_connect,
)


@pytest.fixture
def listener():
    sock = Socket.create_nonblocking()
    sock.set_reuse_addr(True)
    sock.bind_address(InetAddress(0, "127.0.0.1"))
    sock.listen()
    yield sock
    sock.close()


def _accept(listener):
    ready, _, _ = select.select([listener.fileno()], [], [], 5)
    assert ready
    return listener.accept()


def test_accept_reports_peer(listener):
    port = get_local_addr(listener).to_port()
    with socket.create_connection(("127.0.0.1", port)) as client:
        conn, peer = _accept(listener)
        with conn:
            assert peer == InetAddress.from_sockaddr(client.getsockname())
            assert get_peer_addr(conn) == peer
            assert get_local_addr(conn).to_port() == port
            assert not is_self_connect(conn)


def test_accept_without_pending_raises(listener):
    with pytest.raises(BlockingIOError):
        listener.accept()


def test_bind_in_use_raises(listener):
    port = get_local_addr(listener).to_port()
    with Socket.create_nonblocking() as other:
        with pytest.raises(OSError):
            other.bind_address(InetAddress(port, "127.0.0.1"))


def test_nonblocking_connect_then_no_error(listener):
    port = get_local_addr(listener).to_port()
    with Socket.create_nonblocking() as client:
        try:
            client.connect(InetAddress(port, "127.0.0.1"))
        except BlockingIOError:
            pass
        _, writable, _ = select.select([], [client.fileno()], [], 5)
        assert writable
        assert client.get_socket_error() == 0
        conn, _ = _accept(listener)
        conn.close()


def test_options(listener):
    with Socket.create_nonblocking() as sock:
        raw = socket.socket(fileno=socket.dup(sock.fileno()))
        try:
            sock.set_tcp_no_delay(True)
            assert raw.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
            sock.set_tcp_no_delay(False)
            assert raw.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) == 0
            sock.set_keep_alive(True)
            assert raw.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) != 0
            sock.set_reuse_addr(True)
            assert raw.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
        finally:
            raw.close()


def test_shutdown_write_gives_peer_eof(listener):
    port = get_local_addr(listener).to_port()
    with socket.create_connection(("127.0.0.1", port)) as client:
        conn, _ = _accept(listener)
        with conn:
            conn.shutdown_write()
            client.settimeout(5)
            assert client.recv(16) == b""


def test_close_releases_descriptor():
    sock = Socket.create_nonblocking()
    sock.close()
    assert sock.fileno() == -1
    with pytest.raises(OSError):
        sock.listen()