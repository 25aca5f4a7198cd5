from reactornet.buffer import Buffer
from reactornet.http.response import HttpResponse, StatusCode


def _render(resp: HttpResponse) -> bytes:
    buf = Buffer()
    resp.append_to_buffer(buf)
    return buf.retrieve_all_as_bytes()


def test_closing_response_wire_format():
    resp = HttpResponse(True)
    resp.status_code = StatusCode.NOT_FOUND
    resp.status_message = "Not Found"
    assert _render(resp) == b"HTTP/1.1 404 Not Found\r\nConnection: close\r\n\r\n"


def test_keep_alive_response_has_content_length():
    resp = HttpResponse(False)
    resp.status_code = StatusCode.OK
    resp.status_message = "OK"
    resp.body = "hello, world!\n"
    out = _render(resp)
    assert out.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Length: %d\r\n" % len(b"hello, world!\n") in out
    assert b"Connection: Keep-Alive\r\n" in out
    assert out.endswith(b"\r\n\r\nhello, world!\n")


def test_closing_response_has_no_content_length():
    resp = HttpResponse(True)
    resp.status_code = StatusCode.OK
    resp.body = b"data"
    out = _render(resp)
    assert b"Content-Length" not in out
    assert out.endswith(b"\r\n\r\ndata")


def test_headers_are_written():
    resp = HttpResponse(False)
    resp.set_content_type("text/plain")
    resp.add_header("Server", "Muduo")
    out = _render(resp)
    assert b"Content-Type: text/plain\r\n" in out
    assert b"Server: Muduo\r\n" in out


def test_add_header_overwrites():
    resp = HttpResponse(False)
    resp.set_content_type("text/html")
    resp.set_content_type("image/png")
    assert resp.headers == {"Content-Type": "image/png"}


def test_binary_body_is_kept_verbatim():
    body = b"\x89PNG\r\n\x1a\n\x00\xff"
    resp = HttpResponse(False)
    resp.body = body
    out = _render(resp)
    assert out.endswith(body)
    assert b"Content-Length: %d\r\n" % len(body) in out


def test_unknown_status_code_is_zero():
    resp = HttpResponse(True)
    assert resp.status_code == StatusCode.UNKNOWN
    assert _render(resp).startswith(b"HTTP/1.1 0 ")