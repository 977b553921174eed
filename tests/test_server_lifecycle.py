"""Lifecycle, bind failure, and CLI process tests for the static server."""

from __future__ import annotations

import contextlib
import signal
import socket
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

from server import (
    STATE_LISTENING,
    STATE_STOPPED,
    STATE_UNBOUND,
    BindError,
    ServerConfig,
    StaticFileServer,
    readiness_line,
)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_SCRIPT = PROJECT_ROOT / "server.py"

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals required")


def _find_free_port() -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _spawn_server(root: Path, port: int) -> subprocess.Popen[str]:
    return subprocess.Popen(
        [sys.executable, str(SERVER_SCRIPT), str(port), "--root", str(root)],
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def test_state_machine_moves_forward_only(tmp_path: Path) -> None:
    server = StaticFileServer(root_dir=tmp_path, port=0)
    assert server.state == STATE_UNBOUND

    server.bind()
    assert server.state == STATE_LISTENING
    assert server.port != 0

    server.stop()
    assert server.state == STATE_STOPPED

    with pytest.raises(RuntimeError):
        server.bind()


def test_stop_is_idempotent_and_noop_when_unbound(tmp_path: Path) -> None:
    server = StaticFileServer(root_dir=tmp_path, port=0)

    server.stop()
    assert server.state == STATE_UNBOUND

    server.bind()
    server.stop()
    server.stop()
    assert server.state == STATE_STOPPED


def test_stop_releases_listening_socket(tmp_path: Path) -> None:
    server = StaticFileServer(root_dir=tmp_path, port=0)
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    deadline = time.time() + 3
    while server.state != STATE_LISTENING and time.time() < deadline:
        time.sleep(0.01)

    server.stop()
    thread.join(timeout=2)

    assert not thread.is_alive()
    with pytest.raises(OSError):
        socket.create_connection((server.host, server.port), timeout=0.5).close()


def test_bind_to_occupied_port_raises_bind_error(tmp_path: Path) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
        occupant.bind(("127.0.0.1", 0))
        occupant.listen(1)
        port = occupant.getsockname()[1]

        server = StaticFileServer(root_dir=tmp_path, port=port)
        with pytest.raises(BindError) as exc_info:
            server.bind()

    assert exc_info.value.port == port
    assert server.state == STATE_UNBOUND


def test_server_config_validates_port_and_root(tmp_path: Path) -> None:
    config = ServerConfig(port=8080, root_dir=tmp_path)
    assert config.host == "127.0.0.1"

    with pytest.raises(ValueError):
        ServerConfig(port=0, root_dir=tmp_path)
    with pytest.raises(ValueError):
        ServerConfig(port=70000, root_dir=tmp_path)
    with pytest.raises(ValueError):
        ServerConfig(port=8080, root_dir=Path("relative/dir"))


def test_from_config_carries_settings(tmp_path: Path) -> None:
    config = ServerConfig(port=8123, root_dir=tmp_path, log_format="json", worker_count=2)

    server = StaticFileServer.from_config(config)

    assert server.port == 8123
    assert server.root_dir == tmp_path.resolve()
    assert server.log_format == "json"
    assert server.worker_count == 2


def test_readiness_line_contains_marker_root_and_url(tmp_path: Path) -> None:
    line = readiness_line(tmp_path, 8080)

    assert line.startswith("Static server")
    assert str(tmp_path) in line
    assert line.endswith("http://localhost:8080")


@posix_only
@pytest.mark.parametrize("signum", [signal.SIGTERM, signal.SIGINT])
def test_cli_prints_readiness_and_exits_zero_on_signal(tmp_path: Path, signum: int) -> None:
    (tmp_path / "index.html").write_text("<html>WhyLayer</html>", encoding="utf-8")
    port = _find_free_port()
    process = _spawn_server(tmp_path, port)
    try:
        assert process.stdout is not None
        line = process.stdout.readline()
        assert "Static server" in line
        assert str(tmp_path.resolve()) in line
        assert f"http://localhost:{port}" in line

        process.send_signal(signum)
        assert process.wait(timeout=10) == 0
    finally:
        if process.poll() is None:
            process.kill()
            process.wait()
        process.communicate()


def test_cli_exits_nonzero_when_port_is_taken(tmp_path: Path) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
        occupant.bind(("127.0.0.1", 0))
        occupant.listen(1)
        port = occupant.getsockname()[1]

        process = _spawn_server(tmp_path, port)
        stdout, stderr = process.communicate(timeout=10)

    assert process.returncode == 1
    assert "Static server" not in stdout
    assert "Could not bind" in stderr


def test_cli_rejects_missing_root(tmp_path: Path) -> None:
    process = _spawn_server(tmp_path / "missing", _find_free_port())
    _stdout, stderr = process.communicate(timeout=10)

    assert process.returncode == 2
    assert "root directory does not exist" in stderr
