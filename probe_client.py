"""Minimal asyncio HTTP/1.1 GET client used by the verification harness."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field


class ProbeError(Exception):
    """Base class for probe request failures."""


class ProbeTransportError(ProbeError):
    """Connection refused, reset, or an unparseable response."""


class ProbeTimeoutError(ProbeError):
    """No complete response within the per-request bound."""


class HTTPStatusError(ProbeError):
    """A complete response arrived with a non-2xx status code."""

    def __init__(self, response: ProbeResponse) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.status_code = response.status_code
        self.response = response


@dataclass(slots=True)
class ProbeResponse:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


async def fetch(host: str, port: int, path: str, *, timeout_secs: float) -> ProbeResponse:
    """GET ``path`` and return the response, raising for non-2xx statuses.

    The whole exchange (connect, send, read) shares one deadline; on expiry the
    connection is aborted and ``ProbeTimeoutError`` is raised.
    """
    try:
        response = await asyncio.wait_for(_get(host, port, path), timeout=timeout_secs)
    except asyncio.TimeoutError as exc:
        raise ProbeTimeoutError(f"Request timeout after {timeout_secs * 1000:.0f} ms") from exc
    except (OSError, ValueError, asyncio.IncompleteReadError) as exc:
        raise ProbeTransportError(str(exc) or exc.__class__.__name__) from exc

    if not 200 <= response.status_code < 300:
        raise HTTPStatusError(response)
    return response


async def _get(host: str, port: int, path: str) -> ProbeResponse:
    reader, writer = await asyncio.open_connection(host, port)
    try:
        request = (
            f"GET {path} HTTP/1.1\r\n"
            f"Host: {host}:{port}\r\n"
            "Connection: close\r\n"
            "\r\n"
        ).encode("ascii")
        writer.write(request)
        await writer.drain()
        return await _read_response(reader)
    finally:
        writer.close()


async def _read_response(reader: asyncio.StreamReader) -> ProbeResponse:
    status_line = await reader.readline()
    if not status_line.startswith(b"HTTP/"):
        raise ValueError("Invalid status line")
    parts = status_line.decode("iso-8859-1").strip().split(" ")
    if len(parts) < 2:
        raise ValueError("Malformed status line")
    status = int(parts[1])

    headers: dict[str, str] = {}
    while True:
        line = await reader.readline()
        if line in {b"\r\n", b"\n", b""}:
            break
        if b":" not in line:
            raise ValueError("Malformed header line")
        key, value = line.decode("iso-8859-1").strip().split(":", 1)
        headers[key.strip().lower()] = value.strip()

    if headers.get("transfer-encoding", "").lower() == "chunked":
        body = await _read_chunked_body(reader)
    elif "content-length" in headers:
        body = await reader.readexactly(int(headers["content-length"]))
    else:
        body = await reader.read()

    return ProbeResponse(status_code=status, headers=headers, body=body)


async def _read_chunked_body(reader: asyncio.StreamReader) -> bytes:
    body = bytearray()
    while True:
        size_line = await reader.readline()
        if not size_line:
            raise ValueError("Unexpected EOF in chunked body")
        chunk_size = int(size_line.strip().split(b";", 1)[0], 16)
        if chunk_size == 0:
            # Consume the terminating empty trailer line.
            await reader.readline()
            return bytes(body)
        body.extend(await reader.readexactly(chunk_size))
        await reader.readexactly(2)
