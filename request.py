"""Parse the head of an incoming HTTP/1.x request."""

from dataclasses import dataclass, field

from config import MAX_TARGET_LENGTH

HTTP_VERSIONS = ("HTTP/1.0", "HTTP/1.1")
SUPPORTED_METHODS = frozenset({"GET", "HEAD"})
# Methods that get 405 rather than 501.
RECOGNIZED_METHODS = SUPPORTED_METHODS | {"POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT"}


class HTTPRequestParseError(ValueError):
    """The request head is unusable; ``status_code`` is what the client gets back."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class HTTPRequest:
    method: str
    path: str
    http_version: str
    raw_target: str = "/"
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def query(self) -> str:
        return self.raw_target.partition("?")[2]

    @classmethod
    def from_bytes(cls, raw: bytes) -> "HTTPRequest":
        """Build a request from raw head bytes; anything after the blank line is ignored."""
        head = raw.partition(b"\r\n\r\n")[0].decode("iso-8859-1")
        request_line, _, header_block = head.partition("\r\n")
        method, target, http_version = _parse_request_line(request_line)
        return cls(
            method=method,
            path=target.partition("?")[0],
            http_version=http_version,
            raw_target=target,
            headers=_parse_headers(header_block),
        )


def _parse_request_line(line: str) -> tuple[str, str, str]:
    if not line:
        raise HTTPRequestParseError("Missing request line")

    parts = line.split(" ")
    if len(parts) != 3 or not all(parts):
        raise HTTPRequestParseError("Invalid request line")
    method, target, http_version = parts

    method = method.upper()
    if method not in RECOGNIZED_METHODS:
        raise HTTPRequestParseError(f"Method {method} not implemented", status_code=501)
    if http_version not in HTTP_VERSIONS:
        raise HTTPRequestParseError(f"{http_version} not supported", status_code=505)
    if len(target) > MAX_TARGET_LENGTH:
        raise HTTPRequestParseError("Request target too long", status_code=414)
    if not target.startswith("/"):
        raise HTTPRequestParseError("Request target must be an absolute path")
    return method, target, http_version


def _parse_headers(block: str) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in block.split("\r\n"):
        if not line:
            continue
        name, separator, value = line.partition(":")
        name = name.strip().lower()
        if not separator:
            raise HTTPRequestParseError("Malformed header line")
        if not name:
            raise HTTPRequestParseError("Header name cannot be empty")
        headers[name] = value.strip()
    return headers
