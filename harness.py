"""Spawn a static server process, probe it over HTTP, and always tear it down."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from config import (
    DRAIN_DELAY_MS,
    GRACE_WINDOW_MS,
    HARNESS_PORT,
    HOST,
    READINESS_TIMEOUT_MS,
    READY_MARKER,
    REQUEST_TIMEOUT_MS,
)
from probe_client import HTTPStatusError, ProbeError, ProbeResponse, fetch
from report import STATUS_FAIL, STATUS_INFO, STATUS_PASS, STATUS_WARN, ConsoleReporter

logger = logging.getLogger(__name__)

EXPECT_SUCCESS = 200
EXPECT_NOT_FOUND = 404
READER_DRAIN_TIMEOUT_SECS = 1.0


class SpawnError(Exception):
    """Raised when the server child process cannot be created."""


@dataclass(frozen=True, slots=True)
class ProbeScenario:
    target_path: str
    expected_substring: str | None = None
    expected_content_type_fragment: str | None = None
    expect_status: int = EXPECT_SUCCESS
    description: str = ""

    def __post_init__(self) -> None:
        if self.expect_status not in (EXPECT_SUCCESS, EXPECT_NOT_FOUND):
            raise ValueError(f"expect_status must be 200 or 404, got {self.expect_status}")
        if not self.target_path.startswith("/"):
            raise ValueError("target_path must start with '/'")

    @property
    def label(self) -> str:
        return f"GET {self.target_path}"


@dataclass(slots=True)
class ProbeResult:
    scenario: ProbeScenario
    passed: bool
    observed_status: int | None = None
    observed_content_type: str | None = None
    observed_body: str | None = None
    failure_reason: str | None = None


@dataclass(slots=True)
class HarnessSession:
    process: asyncio.subprocess.Process
    readiness_observed: bool = False
    results: list[ProbeResult] = field(default_factory=list)
    torn_down: bool = False
    ready_event: asyncio.Event = field(default_factory=asyncio.Event)
    reader_tasks: list[asyncio.Task[None]] = field(default_factory=list)


@dataclass(slots=True)
class HarnessRun:
    results: list[ProbeResult] = field(default_factory=list)
    readiness_observed: bool = False
    spawn_failed: bool = False

    @property
    def passed(self) -> bool:
        return not self.spawn_failed and all(result.passed for result in self.results)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


DEFAULT_SCENARIOS: tuple[ProbeScenario, ...] = (
    ProbeScenario("/index.html", "WhyLayer", "text/html", description="HTML served correctly"),
    ProbeScenario("/app.js", "function", "javascript", description="JavaScript served correctly"),
    ProbeScenario("/", "WhyLayer", "text/html", description="Root serves index.html"),
    ProbeScenario("/nonexistent.html", expect_status=EXPECT_NOT_FOUND, description="404 handled correctly"),
)


def evaluate_response(scenario: ProbeScenario, response: ProbeResponse) -> ProbeResult:
    """Judge a 2xx response against the scenario's expectations."""
    result = ProbeResult(
        scenario=scenario,
        passed=False,
        observed_status=response.status_code,
        observed_content_type=response.content_type,
        observed_body=response.text,
    )
    if scenario.expect_status == EXPECT_NOT_FOUND:
        result.failure_reason = f"Should return 404 but got {response.status_code}"
        return result
    if response.status_code != EXPECT_SUCCESS:
        result.failure_reason = f"Expected status 200 but got {response.status_code}"
        return result

    expected_substring = scenario.expected_substring
    if expected_substring is not None and expected_substring not in response.text:
        result.failure_reason = f"Response doesn't contain expected content: {expected_substring}"
        return result

    fragment = scenario.expected_content_type_fragment
    if fragment is not None and fragment not in (response.content_type or ""):
        result.failure_reason = f"Wrong content type: {response.content_type}"
        return result

    result.passed = True
    return result


def evaluate_status_error(scenario: ProbeScenario, error: HTTPStatusError) -> ProbeResult:
    """Judge a non-2xx status; only an expected 404 passes."""
    response = error.response
    passed = scenario.expect_status == EXPECT_NOT_FOUND and error.status_code == EXPECT_NOT_FOUND
    failure_reason = None
    if not passed:
        if scenario.expect_status == EXPECT_NOT_FOUND:
            failure_reason = f"Unexpected error: {error}"
        else:
            failure_reason = str(error)
    return ProbeResult(
        scenario=scenario,
        passed=passed,
        observed_status=error.status_code,
        observed_content_type=response.content_type,
        observed_body=response.text,
        failure_reason=failure_reason,
    )


async def run_probe(
    host: str,
    port: int,
    scenario: ProbeScenario,
    *,
    request_timeout_ms: int = REQUEST_TIMEOUT_MS,
) -> ProbeResult:
    try:
        response = await fetch(
            host,
            port,
            scenario.target_path,
            timeout_secs=request_timeout_ms / 1000,
        )
    except HTTPStatusError as exc:
        return evaluate_status_error(scenario, exc)
    except ProbeError as exc:
        return ProbeResult(scenario=scenario, passed=False, failure_reason=str(exc))
    return evaluate_response(scenario, response)


async def run_probes(
    host: str,
    port: int,
    scenarios: Sequence[ProbeScenario],
    *,
    request_timeout_ms: int = REQUEST_TIMEOUT_MS,
    results: list[ProbeResult] | None = None,
    on_result: Callable[[ProbeResult], None] | None = None,
) -> list[ProbeResult]:
    """Run scenarios one after another; a failed probe never stops the sequence.

    Results are appended to ``results`` as they complete so a caller keeps the
    partial list if something unexpected escapes mid-run.
    """
    if results is None:
        results = []
    for scenario in scenarios:
        result = await run_probe(host, port, scenario, request_timeout_ms=request_timeout_ms)
        results.append(result)
        if on_result is not None:
            on_result(result)
    return results


class ProcessTestHarness:
    """Run a server script as a child process and verify it with HTTP probes."""

    def __init__(
        self,
        target_script: Path | str,
        port: int = HARNESS_PORT,
        scenarios: Sequence[ProbeScenario] = DEFAULT_SCENARIOS,
        *,
        host: str = HOST,
        server_args: Sequence[str] = (),
        readiness_timeout_ms: int = READINESS_TIMEOUT_MS,
        request_timeout_ms: int = REQUEST_TIMEOUT_MS,
        grace_window_ms: int = GRACE_WINDOW_MS,
        drain_delay_ms: int = DRAIN_DELAY_MS,
        ready_marker: str = READY_MARKER,
        python_executable: str = sys.executable,
        cwd: Path | str | None = None,
        reporter: ConsoleReporter | None = None,
    ) -> None:
        self.target_script = Path(target_script)
        self.port = port
        self.scenarios = tuple(scenarios)
        self.host = host
        self.server_args = tuple(server_args)
        self.readiness_timeout_ms = readiness_timeout_ms
        self.request_timeout_ms = request_timeout_ms
        self.grace_window_ms = grace_window_ms
        self.drain_delay_ms = drain_delay_ms
        self.ready_marker = ready_marker
        self.python_executable = python_executable
        self.cwd = cwd
        self.reporter = reporter
        self.last_session: HarnessSession | None = None

    def command(self) -> list[str]:
        return [self.python_executable, str(self.target_script), str(self.port), *self.server_args]

    async def run(self) -> HarnessRun:
        self._report(f"Starting static server on port {self.port}...")
        try:
            session = await self._spawn()
        except SpawnError as exc:
            logger.error("%s", exc)
            self._report(str(exc), STATUS_FAIL)
            return HarnessRun(spawn_failed=True)

        self.last_session = session
        try:
            await self._wait_for_readiness(session)
            await run_probes(
                self.host,
                self.port,
                self.scenarios,
                request_timeout_ms=self.request_timeout_ms,
                results=session.results,
                on_result=self._report_result,
            )
        finally:
            await self._teardown(session)

        return HarnessRun(
            results=list(session.results),
            readiness_observed=session.readiness_observed,
        )

    async def _spawn(self) -> HarnessSession:
        if not self.target_script.is_file():
            raise SpawnError(f"Server script not found: {self.target_script}")

        command = self.command()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as exc:
            raise SpawnError(f"Could not start server process: {exc}") from exc

        logger.info("Spawned server pid=%s: %s", process.pid, " ".join(command))
        session = HarnessSession(process=process)
        session.reader_tasks = [
            asyncio.create_task(self._watch_stdout(session)),
            asyncio.create_task(self._watch_stderr(session)),
        ]
        return session

    async def _watch_stdout(self, session: HarnessSession) -> None:
        stream = session.process.stdout
        if stream is None:
            return
        async for raw_line in stream:
            line = raw_line.decode("utf-8", errors="replace").rstrip()
            logger.debug("server stdout: %s", line)
            if not session.readiness_observed and self.ready_marker in line:
                session.readiness_observed = True
                session.ready_event.set()
                self._report("Server started successfully", STATUS_PASS)

    async def _watch_stderr(self, session: HarnessSession) -> None:
        stream = session.process.stderr
        if stream is None:
            return
        async for raw_line in stream:
            logger.info("server stderr: %s", raw_line.decode("utf-8", errors="replace").rstrip())

    async def _wait_for_readiness(self, session: HarnessSession) -> None:
        """Wait until the marker appears, the child exits, or the timeout passes.

        This is not a fixed sleep: it returns as soon as the marker is seen, and
        ``readiness_timeout_ms`` is only the upper bound. It never fails; a missing
        marker is reported as a warning and probing goes ahead.
        """
        self._report("Waiting for server to be ready...")
        ready = asyncio.create_task(session.ready_event.wait())
        exited = asyncio.create_task(session.process.wait())
        try:
            await asyncio.wait(
                {ready, exited},
                timeout=self.readiness_timeout_ms / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            ready.cancel()
            exited.cancel()

        if not session.readiness_observed and session.process.returncode is not None:
            # Let the stdout reader catch up with anything printed before exit.
            await asyncio.wait(session.reader_tasks, timeout=READER_DRAIN_TIMEOUT_SECS)

        if session.readiness_observed:
            return

        if session.process.returncode is not None:
            logger.warning(
                "Server exited with code %s before printing %r",
                session.process.returncode,
                self.ready_marker,
            )
            self._report(
                f"Server exited early (code {session.process.returncode}), proceeding with tests...",
                STATUS_WARN,
            )
            return

        logger.warning(
            "Readiness marker %r not seen within %s ms; probing anyway",
            self.ready_marker,
            self.readiness_timeout_ms,
        )
        self._report("Server may not be fully ready yet, proceeding with tests...", STATUS_WARN)

    async def _teardown(self, session: HarnessSession) -> None:
        if session.torn_down:
            return
        session.torn_down = True

        process = session.process
        self._report("Stopping server...")
        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(process.wait(), timeout=self.grace_window_ms / 1000)
            except asyncio.TimeoutError:
                logger.warning(
                    "Server pid=%s still running %s ms after SIGTERM; killing it",
                    process.pid,
                    self.grace_window_ms,
                )
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
        logger.info("Server pid=%s exited with code %s", process.pid, process.returncode)

        if session.reader_tasks:
            done, pending = await asyncio.wait(
                session.reader_tasks,
                timeout=READER_DRAIN_TIMEOUT_SECS,
            )
            for task in pending:
                task.cancel()
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.warning("Server output reader failed: %s", task.exception())

        await asyncio.sleep(self.drain_delay_ms / 1000)

    def _report_result(self, result: ProbeResult) -> None:
        scenario = result.scenario
        if result.passed:
            detail = scenario.description or "OK"
            if result.observed_content_type:
                detail = f"{detail} ({result.observed_content_type})"
            self._report(f"{scenario.label} - {detail}", STATUS_PASS)
            return
        self._report(f"{scenario.label} - {result.failure_reason}", STATUS_FAIL)

    def _report(self, message: str, status: str = STATUS_INFO) -> None:
        if self.reporter is not None:
            self.reporter.log(message, status)
