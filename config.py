"""Configuration constants for the static server and its verification tools."""

HOST: str = "127.0.0.1"
PORT: int = 8080
STATIC_DIR: str = "static"
SERVER_NAME: str = "whylayer-static/1.0"
READY_MARKER: str = "Static server"
HEALTH_PATH: str = "/healthz"
INDEX_FILE: str = "index.html"
DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".js": "application/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".svg": "image/svg+xml",
}

READ_CHUNK_SIZE: int = 4096
SOCKET_TIMEOUT_SECS: int = 5
ACCEPT_TIMEOUT_SECS: float = 0.2
MAX_HEADER_BYTES: int = 16_384
MAX_TARGET_LENGTH: int = 8_192
WORKER_COUNT: int = 8
LISTEN_BACKLOG: int = 128
LOG_FORMAT: str = "plain"

HARNESS_PORT: int = 9999
READINESS_TIMEOUT_MS: int = 2_000
REQUEST_TIMEOUT_MS: int = 5_000
GRACE_WINDOW_MS: int = 2_000
DRAIN_DELAY_MS: int = 1_000
