"""Static file server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import socket
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from config import (
    ACCEPT_TIMEOUT_SECS,
    HEALTH_PATH,
    HOST,
    LISTEN_BACKLOG,
    LOG_FORMAT,
    PORT,
    READY_MARKER,
    SOCKET_TIMEOUT_SECS,
    STATIC_DIR,
    WORKER_COUNT,
)
from handlers.static_handlers import health, serve_static
from request import SUPPORTED_METHODS, HTTPRequest, HTTPRequestParseError
from response import REASON_PHRASES, HTTPResponse
from socket_handler import (
    HeaderTooLargeError,
    HTTPReadError,
    MalformedRequestError,
    SocketTimeoutError,
    read_http_request_head,
    write_http_response_message,
)

logger = logging.getLogger(__name__)

STATE_UNBOUND = "unbound"
STATE_LISTENING = "listening"
STATE_STOPPED = "stopped"

_READ_ERROR_STATUS: dict[type[HTTPReadError], int] = {
    MalformedRequestError: 400,
    SocketTimeoutError: 408,
    HeaderTooLargeError: 431,
}

Handler = Callable[[HTTPRequest, Path], HTTPResponse]


class BindError(Exception):
    """Raised when the listening socket cannot be bound."""

    def __init__(self, message: str, *, host: str, port: int) -> None:
        super().__init__(message)
        self.host = host
        self.port = port


@dataclass(frozen=True, slots=True)
class ServerConfig:
    port: int = PORT
    root_dir: Path = field(default_factory=lambda: Path(STATIC_DIR).resolve())
    host: str = HOST
    log_format: str = LOG_FORMAT
    worker_count: int = WORKER_COUNT

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if not self.root_dir.is_absolute():
            raise ValueError("root_dir must be an absolute path")
        if self.worker_count <= 0:
            raise ValueError("worker_count must be positive")


class StaticFileServer:
    """Serve files from one root directory.

    Lifecycle is ``unbound -> listening -> stopped``. ``stop()`` only flips the
    state and closes the listening socket, so it may be called from a signal
    handler or from another thread while ``serve_forever()`` is running.
    """

    def __init__(
        self,
        root_dir: Path | str = STATIC_DIR,
        host: str = HOST,
        port: int = PORT,
        *,
        worker_count: int = WORKER_COUNT,
        log_format: str = LOG_FORMAT,
    ) -> None:
        self.root_dir = Path(root_dir).resolve()
        self.host = host
        self.port = port
        self.worker_count = worker_count
        self.log_format = log_format

        self._server_socket: socket.socket | None = None
        self._state = STATE_UNBOUND
        self._routes: dict[str, Handler] = {HEALTH_PATH: health}

    @classmethod
    def from_config(cls, config: ServerConfig) -> "StaticFileServer":
        return cls(
            root_dir=config.root_dir,
            host=config.host,
            port=config.port,
            worker_count=config.worker_count,
            log_format=config.log_format,
        )

    @property
    def state(self) -> str:
        return self._state

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    def bind(self) -> None:
        """Bind and listen; a failure is fatal and leaves the server unbound."""
        if self._state != STATE_UNBOUND:
            raise RuntimeError(f"Cannot bind a server in state {self._state!r}")

        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(LISTEN_BACKLOG)
        except OSError as exc:
            server_socket.close()
            raise BindError(
                f"Could not bind {self.host}:{self.port}: {exc.strerror or exc}",
                host=self.host,
                port=self.port,
            ) from exc

        server_socket.settimeout(ACCEPT_TIMEOUT_SECS)
        self.port = server_socket.getsockname()[1]
        self._server_socket = server_socket
        self._state = STATE_LISTENING

    def start(self) -> None:
        """Bind, then serve until ``stop()`` is called."""
        self.bind()
        self.serve_forever()

    def serve_forever(self) -> None:
        server_socket = self._server_socket
        if self._state == STATE_STOPPED:
            return
        if self._state != STATE_LISTENING or server_socket is None:
            raise RuntimeError("Server is not listening")

        with ThreadPoolExecutor(
            max_workers=self.worker_count,
            thread_name_prefix="http-worker",
        ) as executor:
            try:
                while self._state == STATE_LISTENING:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        break
                    executor.submit(self._handle_client, client_socket, address)
            finally:
                self.stop()

    def stop(self) -> None:
        if self._state != STATE_LISTENING:
            return
        self._state = STATE_STOPPED
        server_socket, self._server_socket = self._server_socket, None
        if server_socket is not None:
            server_socket.close()

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(SOCKET_TIMEOUT_SECS)
            started_at = time.perf_counter()
            method = "-"
            path = "-"
            bytes_in = 0
            try:
                raw_head = read_http_request_head(client_socket)
                if not raw_head:
                    return
                bytes_in = len(raw_head)
                request = HTTPRequest.from_bytes(raw_head)
            except HTTPReadError as exc:
                response = _error_response(_READ_ERROR_STATUS.get(type(exc), 400))
            except HTTPRequestParseError as exc:
                response = _error_response(exc.status_code)
            except OSError:
                return
            else:
                method = request.method
                path = request.path
                response = self._dispatch(request)

            try:
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError as exc:
                logger.warning("client=%s path=%s write failed: %s", address[0], path, exc)
                return

            self._record_and_log(
                address=address,
                method=method,
                path=path,
                response=response,
                bytes_in=bytes_in,
                bytes_out=bytes_sent,
                started_at=started_at,
            )

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in SUPPORTED_METHODS:
            response = _error_response(405)
            response.headers["Allow"] = ", ".join(sorted(SUPPORTED_METHODS))
            return response

        handler = self._routes.get(request.path, serve_static)
        try:
            response = handler(request, self.root_dir)
            if request.method == "HEAD":
                return _as_head_response(response)
            return response
        except Exception:
            logger.exception("Unhandled error in request handler path=%s", request.path)
            return _error_response(500)

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_in: int,
        bytes_out: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_in": bytes_in,
            "bytes_out": bytes_out,
            "latency_ms": round(duration_ms, 3),
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_in=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_in"],
            event["bytes_out"],
            duration_ms,
        )


def _error_response(status_code: int) -> HTTPResponse:
    return HTTPResponse(
        status_code=status_code,
        body=REASON_PHRASES.get(status_code, "Bad Request"),
    )


def _as_head_response(get_response: HTTPResponse) -> HTTPResponse:
    return HTTPResponse(
        status_code=get_response.status_code,
        reason_phrase=get_response.reason_phrase,
        headers=dict(get_response.headers),
        body=b"",
        content_length_override=get_response.payload_length(),
    )


def readiness_line(root_dir: Path, port: int) -> str:
    return f"{READY_MARKER} serving {root_dir} on http://localhost:{port}"


def _port_argument(value: str) -> int:
    try:
        port = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError("port must be between 1 and 65535")
    return port


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a directory of static files over HTTP")
    parser.add_argument("port", nargs="?", type=_port_argument, default=PORT)
    parser.add_argument("--root", default=STATIC_DIR, help="directory to serve")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--workers", type=int, default=WORKER_COUNT)
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    args = parser.parse_args(argv)
    args.root = Path(args.root).resolve()
    if not args.root.is_dir():
        parser.error(f"root directory does not exist: {args.root}")
    if args.workers <= 0:
        parser.error("--workers must be positive")
    return args


def _install_signal_handlers(server: StaticFileServer) -> None:
    def _request_shutdown(signum: int, _frame: object) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        server.stop()

    signal.signal(signal.SIGINT, _request_shutdown)
    signal.signal(signal.SIGTERM, _request_shutdown)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = ServerConfig(
        port=args.port,
        root_dir=args.root,
        host=args.host,
        log_format=args.log_format,
        worker_count=args.workers,
    )
    server = StaticFileServer.from_config(config)
    try:
        server.bind()
    except BindError as exc:
        logger.error("Fatal: %s", exc)
        return 1

    _install_signal_handlers(server)
    print(readiness_line(server.root_dir, server.port), flush=True)
    server.serve_forever()
    logger.info("Server on port %s stopped", server.port)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
