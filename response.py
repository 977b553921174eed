"""HTTP response model: an in-memory body or a file streamed from disk."""

from dataclasses import dataclass, field
from email.utils import formatdate
from pathlib import Path

from config import SERVER_NAME

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    414: "URI Too Long",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    505: "HTTP Version Not Supported",
}

DEFAULT_HEADERS = (
    ("Content-Type", "text/plain; charset=utf-8"),
    ("Server", SERVER_NAME),
    ("Connection", "close"),
)


@dataclass(slots=True)
class HTTPResponse:
    """A response whose payload is either ``body`` or the file at ``file_path``.

    ``content_length_override`` lets a HEAD response advertise the length of the
    GET body it stands in for while carrying no payload itself.
    """

    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | str = b""
    file_path: Path | None = None
    content_length_override: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if self.file_path is not None and self.body:
            raise ValueError("Response cannot set both body and file_path")

    @property
    def reason(self) -> str:
        return self.reason_phrase or REASON_PHRASES.get(self.status_code, "Unknown")

    def payload_length(self) -> int:
        if self.file_path is not None:
            return self.file_path.stat().st_size
        return len(self.body)

    def head_bytes(self, payload_length: int | None = None) -> bytes:
        """Status line and headers, terminated by the blank line."""
        if payload_length is None:
            payload_length = self.payload_length()
        content_length = self.content_length_override
        if content_length is None:
            content_length = payload_length

        headers = dict(self.headers)
        headers.setdefault("Date", formatdate(usegmt=True))
        for name, value in DEFAULT_HEADERS:
            headers.setdefault(name, value)
        headers["Content-Length"] = str(content_length)

        lines = [f"HTTP/1.1 {self.status_code} {self.reason}"]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        return ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1")

    def to_bytes(self) -> bytes:
        if self.file_path is not None:
            payload = self.file_path.read_bytes()
        else:
            payload = self.body
        return self.head_bytes(len(payload)) + payload
