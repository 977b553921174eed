"""Unit tests for HTTP request head parsing."""

import pytest

from request import HTTPRequest, HTTPRequestParseError


def test_parse_get_keeps_raw_target_and_query() -> None:
    raw = (
        b"GET /app.js?v=12&lang=en HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "GET"
    assert request.path == "/app.js"
    assert request.raw_target == "/app.js?v=12&lang=en"
    assert request.query == "v=12&lang=en"
    assert request.http_version == "HTTP/1.1"
    assert request.headers["host"] == "localhost"


def test_parse_double_slash_target_is_a_path() -> None:
    request = HTTPRequest.from_bytes(b"GET //does-not-exist.html?v=2 HTTP/1.1\r\nHost: x\r\n\r\n")

    assert request.path == "//does-not-exist.html"
    assert request.query == "v=2"


def test_parse_keeps_percent_encoding_in_path() -> None:
    request = HTTPRequest.from_bytes(b"GET /my%20file.html HTTP/1.0\r\n\r\n")

    assert request.path == "/my%20file.html"
    assert request.http_version == "HTTP/1.0"
    assert request.headers == {}


def test_parse_ignores_bytes_after_head() -> None:
    request = HTTPRequest.from_bytes(b"GET / HTTP/1.1\r\nHost: a\r\n\r\nGET /other HTTP/1.1\r\n")

    assert request.path == "/"
    assert request.headers == {"host": "a"}


def test_parse_uppercases_method_and_lowercases_header_names() -> None:
    request = HTTPRequest.from_bytes(b"head / HTTP/1.1\r\nX-Custom-Header:  value \r\n\r\n")

    assert request.method == "HEAD"
    assert request.headers == {"x-custom-header": "value"}


def test_recognized_but_unsupported_method_still_parses() -> None:
    assert HTTPRequest.from_bytes(b"POST /form HTTP/1.1\r\n\r\n").method == "POST"


@pytest.mark.parametrize(
    ("raw", "status_code", "message"),
    [
        (b"\r\n\r\n", 400, "Missing request line"),
        (b"BROKEN-LINE\r\nHost: localhost\r\n\r\n", 400, "Invalid request line"),
        (b"GET  / HTTP/1.1\r\n\r\n", 400, "Invalid request line"),
        (b"GET / HTTP/1.1\r\nno-colon-here\r\n\r\n", 400, "Malformed header line"),
        (b"GET / HTTP/1.1\r\n: empty\r\n\r\n", 400, "Header name cannot be empty"),
        (b"BREW /pot HTTP/1.1\r\n\r\n", 501, "not implemented"),
        (b"GET / HTTP/2.0\r\n\r\n", 505, "not supported"),
        (b"GET http://example.com/ HTTP/1.1\r\n\r\n", 400, "absolute path"),
    ],
)
def test_parse_errors_carry_status(raw: bytes, status_code: int, message: str) -> None:
    with pytest.raises(HTTPRequestParseError, match=message) as exc_info:
        HTTPRequest.from_bytes(raw)

    assert exc_info.value.status_code == status_code


def test_overlong_target_is_414() -> None:
    raw = b"GET /" + b"a" * 9000 + b" HTTP/1.1\r\n\r\n"

    with pytest.raises(HTTPRequestParseError) as exc_info:
        HTTPRequest.from_bytes(raw)

    assert exc_info.value.status_code == 414
