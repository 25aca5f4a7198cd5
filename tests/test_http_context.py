from reactornet.buffer import Buffer
from reactornet.http.context import HttpContext, ParseState
from reactornet.http.request import Method, Version
from reactornet.timestamp import Timestamp


def _buffer(data: bytes) -> Buffer:
    buf = Buffer()
    buf.append(data)
    return buf


def test_parses_complete_request():
    ctx = HttpContext()
    buf = _buffer(b"GET /index.html?a=1 HTTP/1.1\r\nHost: example.com\r\nAccept: */*\r\n\r\n")
    when = Timestamp(1234)
    assert ctx.parse_request(buf, when) is True
    assert ctx.got_all()
    req = ctx.request
    assert req.method is Method.GET
    assert req.version is Version.HTTP11
    assert req.path == "/index.html"
    assert req.query == "?a=1"
    assert req.receive_time == when
    assert req.get_header("Host") == "example.com"
    assert req.get_header("Accept") == "*/*"
    assert buf.readable_bytes() == 0


def test_path_without_query():
    ctx = HttpContext()
    assert ctx.parse_request(_buffer(b"POST /submit HTTP/1.0\r\n\r\n"), Timestamp(1))
    assert ctx.request.path == "/submit"
    assert ctx.request.query == ""
    assert ctx.request.version is Version.HTTP10
    assert ctx.request.method is Method.POST


def test_partial_request_waits_for_more():
    ctx = HttpContext()
    buf = _buffer(b"GET /hello HTTP/1.1\r\nHost: exa")
    assert ctx.parse_request(buf, Timestamp(1)) is True
    assert not ctx.got_all()
    assert ctx.state is ParseState.EXPECT_HEADERS
    buf.append(b"mple.com\r\n\r\n")
    assert ctx.parse_request(buf, Timestamp(2)) is True
    assert ctx.got_all()
    assert ctx.request.get_header("Host") == "example.com"
    assert ctx.request.receive_time == Timestamp(1)


def test_request_line_split_across_reads():
    ctx = HttpContext()
    buf = _buffer(b"GET /hel")
    assert ctx.parse_request(buf, Timestamp(1)) is True
    assert ctx.state is ParseState.EXPECT_REQUEST_LINE
    buf.append(b"lo HTTP/1.1\r\n\r\n")
    assert ctx.parse_request(buf, Timestamp(1))
    assert ctx.request.path == "/hello"


def test_unknown_method_fails():
    ctx = HttpContext()
    assert ctx.parse_request(_buffer(b"BREW /pot HTTP/1.1\r\n\r\n"), Timestamp(1)) is False
    assert not ctx.got_all()


def test_bad_version_fails():
    ctx = HttpContext()
    assert ctx.parse_request(_buffer(b"GET / HTTP/1.2\r\n\r\n"), Timestamp(1)) is False
    ctx = HttpContext()
    assert ctx.parse_request(_buffer(b"GET / HTTP/2.0\r\n\r\n"), Timestamp(1)) is False


def test_missing_version_fails():
    ctx = HttpContext()
    assert ctx.parse_request(_buffer(b"GET /\r\n\r\n"), Timestamp(1)) is False


def test_body_is_left_in_buffer():
    ctx = HttpContext()
    body = b"name=value"
    buf = _buffer(b"POST /form HTTP/1.1\r\nContent-Length: 10\r\n\r\n" + body)
    assert ctx.parse_request(buf, Timestamp(1))
    assert ctx.got_all()
    assert buf.retrieve_all_as_bytes() == body


def test_reset_clears_state_and_request():
    ctx = HttpContext()
    ctx.parse_request(_buffer(b"GET /x HTTP/1.1\r\nHost: h\r\n\r\n"), Timestamp(1))
    ctx.reset()
    assert ctx.state is ParseState.EXPECT_REQUEST_LINE
    assert not ctx.got_all()
    assert ctx.request.path == ""
    assert ctx.request.headers == {}
    assert ctx.request.method is Method.INVALID