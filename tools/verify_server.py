#!/usr/bin/env python3
"""Spawn the static server and verify it with the default probe battery."""
# ruff: noqa: E402

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import (
    DRAIN_DELAY_MS,
    GRACE_WINDOW_MS,
    HARNESS_PORT,
    READINESS_TIMEOUT_MS,
    REQUEST_TIMEOUT_MS,
    STATIC_DIR,
)
from harness import DEFAULT_SCENARIOS, HarnessRun, ProcessTestHarness
from report import STATUS_FAIL, STATUS_PASS, CheckReport, ConsoleReporter

logger = logging.getLogger(__name__)

SERVER_SCRIPT = REPO_ROOT / "server.py"


def build_report(run: HarnessRun) -> CheckReport:
    report = CheckReport()
    if run.spawn_failed:
        report.record(STATUS_FAIL)
    for result in run.results:
        report.record(STATUS_PASS if result.passed else STATUS_FAIL)
    return report


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify the static server over HTTP")
    parser.add_argument("--port", type=int, default=HARNESS_PORT)
    parser.add_argument("--root", default=str(REPO_ROOT / STATIC_DIR), help="directory to serve")
    parser.add_argument("--script", default=str(SERVER_SCRIPT), help="server script to spawn")
    parser.add_argument("--readiness-timeout-ms", type=int, default=READINESS_TIMEOUT_MS)
    parser.add_argument("--request-timeout-ms", type=int, default=REQUEST_TIMEOUT_MS)
    parser.add_argument("--grace-window-ms", type=int, default=GRACE_WINDOW_MS)
    parser.add_argument("--drain-delay-ms", type=int, default=DRAIN_DELAY_MS)
    parser.add_argument("--no-color", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    reporter = ConsoleReporter(use_color=False if args.no_color else None)
    reporter.banner("WhyLayer Server Test")

    harness = ProcessTestHarness(
        args.script,
        args.port,
        DEFAULT_SCENARIOS,
        server_args=("--root", str(Path(args.root).resolve())),
        readiness_timeout_ms=args.readiness_timeout_ms,
        request_timeout_ms=args.request_timeout_ms,
        grace_window_ms=args.grace_window_ms,
        drain_delay_ms=args.drain_delay_ms,
        reporter=reporter,
    )
    try:
        run = asyncio.run(harness.run())
    except Exception as exc:
        logger.exception("Server verification aborted")
        reporter.log(f"Test error: {exc}", STATUS_FAIL)
        return 1

    reporter.summary(build_report(run), title="SERVER TEST SUMMARY")
    return run.exit_code


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
