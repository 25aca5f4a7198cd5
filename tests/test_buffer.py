import os

import pytest

from reactornet.buffer import Buffer


def test_initial_layout():
    buf = Buffer()
    assert buf.readable_bytes() == 0
    assert buf.writable_bytes() == Buffer.INITIAL_SIZE
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND


def test_append_and_retrieve():
    buf = Buffer()
    buf.append(b"hello world")
    assert buf.readable_bytes() == len(b"hello world")
    assert buf.retrieve_as_bytes(5) == b"hello"
    assert buf.peek() == b" world"
    assert buf.retrieve_all_as_bytes() == b" world"
    assert buf.readable_bytes() == 0
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND


def test_append_text_is_utf8():
    buf = Buffer()
    buf.append("h\u00e9")
    assert buf.peek() == "h\u00e9".encode("utf-8")


def test_retrieve_past_end_resets():
    buf = Buffer()
    buf.append(b"abc")
    buf.retrieve(10)
    assert buf.readable_bytes() == 0
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND


def test_grow_when_full():
    buf = Buffer()
    data = b"x" * 2000
    buf.append(data)
    assert buf.readable_bytes() == len(data)
    assert buf.writable_bytes() == 0
    assert buf.peek() == data


def test_make_space_moves_data_instead_of_growing():
    buf = Buffer()
    buf.append(b"a" * 2000)
    buf.retrieve(1500)
    total = buf.readable_bytes() + buf.writable_bytes() + buf.prependable_bytes()
    buf.append(b"b" * 1000)
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND
    assert buf.readable_bytes() == 500 + 1000
    assert buf.readable_bytes() + buf.writable_bytes() + buf.prependable_bytes() == total
    assert buf.peek() == b"a" * 500 + b"b" * 1000


def test_prepend():
    buf = Buffer()
    buf.append(b"body")
    buf.prepend(b"\x00\x00\x00\x04")
    assert buf.peek() == b"\x00\x00\x00\x04body"
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND - 4


def test_prepend_too_large():
    buf = Buffer()
    with pytest.raises(ValueError):
        buf.prepend(b"z" * (Buffer.CHEAP_PREPEND + 1))


def test_find_crlf():
    buf = Buffer()
    buf.append(b"GET / HTTP/1.1\r\nHost: a\r\n")
    first = buf.find_crlf()
    assert buf.peek()[:first] == b"GET / HTTP/1.1"
    second = buf.find_crlf(first + 2)
    assert buf.peek()[first + 2:second] == b"Host: a"
    assert buf.find_crlf(second + 2) is None


def test_find_crlf_missing_and_bad_start():
    buf = Buffer()
    buf.append(b"no line end")
    assert buf.find_crlf() is None
    with pytest.raises(ValueError):
        buf.find_crlf(100)


def test_read_fd_and_write_fd_round_trip():
    r, w = os.pipe()
    try:
        out = Buffer()
        out.append(b"ping pong")
        written = out.write_fd(w)
        assert written == len(b"ping pong")
        assert out.peek() == b"ping pong"
        inbuf = Buffer()
        n = inbuf.read_fd(r)
        assert n == written
        assert inbuf.retrieve_all_as_bytes() == b"ping pong"
    finally:
        os.close(r)
        os.close(w)


def test_read_fd_overflows_into_extra_space():
    r, w = os.pipe()
    try:
        payload = bytes(range(256)) * 12
        os.write(w, payload)
        buf = Buffer(16)
        n = buf.read_fd(r)
        assert n == len(payload)
        assert buf.peek() == payload
    finally:
        os.close(r)
        os.close(w)


def test_read_fd_end_of_file():
    r, w = os.pipe()
    os.close(w)
    try:
        buf = Buffer()
        assert buf.read_fd(r) == 0
        assert buf.readable_bytes() == 0
    finally:
        os.close(r)


def test_read_fd_error_raises():
    r, w = os.pipe()
    os.close(r)
    os.close(w)
    with pytest.raises(OSError):
        Buffer().read_fd(r)