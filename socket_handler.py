"""Read a bounded request head from a client socket and write responses back."""

from __future__ import annotations

import os
import socket

from config import MAX_HEADER_BYTES, READ_CHUNK_SIZE
from response import HTTPResponse


class HTTPReadError(Exception):
    """The request head could not be read; the server answers with an error status."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request head."""


class HeaderTooLargeError(HTTPReadError):
    """The head grew past ``max_header_bytes`` before the blank line arrived (431)."""


class SocketTimeoutError(HTTPReadError):
    """The client went quiet mid-head (408)."""


def read_http_request_head(
    client_socket: socket.socket,
    *,
    max_header_bytes: int = MAX_HEADER_BYTES,
) -> bytes:
    """Read bytes up to and including the blank line that ends the request head.

    Returns ``b""`` when the peer closes the connection without sending anything.
    """
    buffer = bytearray()
    while True:
        header_end_index = buffer.find(b"\r\n\r\n")
        if header_end_index != -1:
            if header_end_index + 4 > max_header_bytes:
                raise HeaderTooLargeError(f"Request head exceeds {max_header_bytes} bytes")
            return bytes(buffer[: header_end_index + 4])

        if len(buffer) > max_header_bytes:
            raise HeaderTooLargeError(f"Request head exceeds {max_header_bytes} bytes")

        try:
            chunk = client_socket.recv(READ_CHUNK_SIZE)
        except socket.timeout as exc:
            raise SocketTimeoutError("Timed out waiting for request bytes") from exc

        if not chunk:
            if not buffer:
                return b""
            raise MalformedRequestError("Connection closed before request head completed")

        buffer.extend(chunk)


def write_http_response_message(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Write an HTTPResponse, streaming file bodies straight from disk."""
    if response.file_path is None:
        message = response.head_bytes() + response.body
        client_socket.sendall(message)
        return len(message)

    with response.file_path.open("rb") as file_obj:
        file_size = os.fstat(file_obj.fileno()).st_size
        head = response.head_bytes(file_size)
        client_socket.sendall(head)
        if file_size == 0:
            return len(head)
        # socket.sendfile falls back to send() where os.sendfile is unavailable.
        return len(head) + client_socket.sendfile(file_obj, 0, file_size)
