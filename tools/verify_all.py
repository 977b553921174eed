#!/usr/bin/env python3
"""Run every verification script and print one combined verdict."""
# ruff: noqa: E402

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import STATIC_DIR
from report import STATUS_FAIL, STATUS_PASS, CheckReport, ConsoleReporter

TOOLS_DIR = REPO_ROOT / "tools"


@dataclass(frozen=True, slots=True)
class VerificationScript:
    path: Path
    description: str
    args: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ScriptOutcome:
    description: str
    passed: bool
    returncode: int | None


def run_script(script: VerificationScript, reporter: ConsoleReporter) -> ScriptOutcome:
    """Run one script with inherited stdio; a launch failure counts as a failed check."""
    reporter.line(f"Running: {script.description}", "blue", "bold")
    reporter.line(f"Script: {script.path}", "blue")
    try:
        completed = subprocess.run(
            [sys.executable, str(script.path), *script.args],
            cwd=REPO_ROOT,
            check=False,
        )
    except OSError as exc:
        reporter.log(f"Error running {script.description}: {exc}", STATUS_FAIL)
        return ScriptOutcome(script.description, passed=False, returncode=None)

    if completed.returncode == 0:
        reporter.log(f"{script.description} - PASSED", STATUS_PASS)
        return ScriptOutcome(script.description, passed=True, returncode=0)
    reporter.log(
        f"{script.description} - FAILED (exit code: {completed.returncode})",
        STATUS_FAIL,
    )
    return ScriptOutcome(script.description, passed=False, returncode=completed.returncode)


def default_scripts(root: Path, *, no_color: bool = False) -> list[VerificationScript]:
    color_args = ("--no-color",) if no_color else ()
    return [
        VerificationScript(
            TOOLS_DIR / "health_check.py",
            "Component Health Check",
            ("--root", str(root), *color_args),
        ),
        VerificationScript(
            TOOLS_DIR / "verify_server.py",
            "Server Functionality Test",
            ("--root", str(root), *color_args),
        ),
    ]


def run_all(scripts: list[VerificationScript], reporter: ConsoleReporter) -> int:
    started = time.perf_counter()
    outcomes = [run_script(script, reporter) for script in scripts]
    duration = time.perf_counter() - started

    reporter.header("FINAL SUMMARY")
    report = CheckReport()
    for outcome in outcomes:
        status = STATUS_PASS if outcome.passed else STATUS_FAIL
        report.record(status)
        label = reporter.paint("✓ PASS", "green") if outcome.passed else reporter.paint("✗ FAIL", "red")
        reporter.line(f"  {label}  {outcome.description}")
    reporter.line(f"Duration: {duration:.2f}s", "blue", "bold")

    exit_code = reporter.summary(report, title="VERIFICATION RESULT")
    if exit_code == 0:
        reporter.banner("✓✓✓ ALL PROCESSES ARE WORKING! ✓✓✓", "System is healthy and ready to use.", color="green")
        reporter.line("To start the application: python server.py 8080")
    else:
        reporter.banner("✗✗✗ SOME PROCESSES HAVE ISSUES! ✗✗✗", "Please review the errors above.", color="red")
        reporter.line("Run tools/health_check.py or tools/verify_server.py alone to isolate issues.")
    return exit_code


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run all WhyLayer verification scripts")
    parser.add_argument("--root", default=str(REPO_ROOT / STATIC_DIR), help="web application root to verify")
    parser.add_argument("--no-color", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    reporter = ConsoleReporter(use_color=False if args.no_color else None)
    reporter.banner("WhyLayer Master Verification System", "Checking ALL Processes", color="magenta")
    root = Path(args.root).resolve()
    return run_all(default_scripts(root, no_color=args.no_color), reporter)


if __name__ == "__main__":
    raise SystemExit(main())
