#!/usr/bin/env python3
"""Check that a WhyLayer web root has its expected files and content."""
# ruff: noqa: E402

from __future__ import annotations

import argparse
import json
import re
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import STATIC_DIR
from report import STATUS_FAIL, STATUS_INFO, STATUS_PASS, STATUS_WARN, CheckReport, ConsoleReporter

Predicate = Callable[[str], bool]

SERVER_SOURCES = (
    REPO_ROOT / "server.py",
    REPO_ROOT / "utils.py",
    REPO_ROOT / "socket_handler.py",
)


def contains_any(*needles: str) -> Predicate:
    def _predicate(content: str) -> bool:
        return any(needle in content for needle in needles)

    return _predicate


def matches(pattern: str) -> Predicate:
    compiled = re.compile(pattern, re.IGNORECASE)

    def _predicate(content: str) -> bool:
        return compiled.search(content) is not None

    return _predicate


def min_length(length: int) -> Predicate:
    def _predicate(content: str) -> bool:
        return len(content) > length

    return _predicate


@dataclass(frozen=True, slots=True)
class ContentCheck:
    description: str
    predicate: Predicate
    # Status recorded when the predicate does not hold.
    severity: str = STATUS_FAIL


ENV_CHECKS = (
    ContentCheck("GOOGLE_API_KEY", contains_any("GOOGLE_API_KEY")),
    ContentCheck("MONGO_URI", contains_any("MONGO_URI"), STATUS_WARN),
)

CORE_FILES = (
    ("index.html", "Main HTML file"),
    ("app.js", "Main application JavaScript"),
    ("neural.js", "Neural network module"),
    ("voice.js", "Voice recognition module"),
    ("data.js", "Data management module"),
    ("package.json", "Package configuration"),
)

HTML_CHECKS = (
    ContentCheck("HTML tag", matches(r"<html")),
    ContentCheck("HEAD tag", matches(r"<head>")),
    ContentCheck("BODY tag", matches(r"<body")),
    ContentCheck("Script tags", matches(r"<script")),
    ContentCheck("app.js reference", matches(r"app\.js")),
    ContentCheck("TailwindCSS reference", matches(r"tailwind")),
)

MODULE_CHECKS: dict[str, tuple[ContentCheck, ...]] = {
    "app.js": (
        ContentCheck("API fetch function", matches(r"fetchFromAPI"), STATUS_WARN),
        ContentCheck("Memory Manager", matches(r"MemoryManager"), STATUS_WARN),
        ContentCheck("Replay state management", matches(r"replayState"), STATUS_WARN),
        ContentCheck("API configuration", matches(r"API_BASE_URL"), STATUS_WARN),
    ),
    "neural.js": (ContentCheck("Neural network logic", min_length(1000), STATUS_WARN),),
    "voice.js": (ContentCheck("Voice logic", contains_any("voice", "speech"), STATUS_WARN),),
    "data.js": (ContentCheck("Data structures", contains_any("data", "mock"), STATUS_WARN),),
}

SERVER_CHECKS = (
    ContentCheck("HTTP server creation", matches(r"socket\.socket"), STATUS_WARN),
    ContentCheck("Server listen", matches(r"\.listen\("), STATUS_WARN),
    ContentCheck("MIME type handling", matches(r"MIME_TYPES|get_content_type"), STATUS_WARN),
    ContentCheck("File serving", matches(r"sendfile|read_bytes"), STATUS_WARN),
)

STARTUP_SCRIPTS = ("frontend", "dev", "start")

DOCUMENTS = (
    ("README.md", "Main README"),
    ("BACKEND_SETUP.md", "Backend setup guide"),
    ("FULLSTACK_SETUP.md", "Full stack setup guide"),
    ("PROBLEM_AND_SOLUTION.md", "Problem/Solution doc"),
)

SCRIPT_TOKENS = ("function", "const", "let", "var")


def check_file_exists(
    path: Path,
    description: str,
    reporter: ConsoleReporter,
    report: CheckReport,
) -> bool:
    if path.exists():
        reporter.log(f"{description}: {path.name}", STATUS_PASS, report)
        return True
    reporter.log(f"{description}: {path.name} NOT FOUND", STATUS_FAIL, report)
    return False


def check_content(
    content: str,
    checks: Sequence[ContentCheck],
    reporter: ConsoleReporter,
    report: CheckReport,
    *,
    label: str = "",
) -> None:
    prefix = f"{label}: " if label else ""
    for check in checks:
        if check.predicate(content):
            reporter.log(f"{prefix}{check.description} present", STATUS_PASS, report)
        else:
            reporter.log(f"{prefix}{check.description} missing", check.severity, report)


def check_script_structure(
    path: Path,
    description: str,
    reporter: ConsoleReporter,
    report: CheckReport,
) -> None:
    content = _read_text(path, reporter, report)
    if content is None:
        return
    if not content:
        reporter.log(f"{description}: File is empty", STATUS_FAIL, report)
    elif contains_any(*SCRIPT_TOKENS)(content):
        reporter.log(f"{description}: Valid JavaScript structure", STATUS_PASS, report)
    else:
        reporter.log(f"{description}: No JavaScript code detected", STATUS_WARN, report)


def check_environment(root: Path, reporter: ConsoleReporter, report: CheckReport) -> None:
    reporter.header("ENVIRONMENT CONFIGURATION CHECK")
    env_file = root / ".env"
    if check_file_exists(env_file, "Environment file", reporter, report):
        content = _read_text(env_file, reporter, report)
        if content is not None:
            check_content(content, ENV_CHECKS, reporter, report)

    client_env = root / "env.js"
    if check_file_exists(client_env, "Client environment file", reporter, report):
        check_script_structure(client_env, "env.js syntax", reporter, report)


def check_core_files(root: Path, reporter: ConsoleReporter, report: CheckReport) -> None:
    reporter.header("CORE FILES CHECK")
    for relative, description in CORE_FILES:
        path = root / relative
        if check_file_exists(path, description, reporter, report) and path.suffix == ".js":
            check_script_structure(path, f"{description} syntax", reporter, report)


def check_html_structure(root: Path, reporter: ConsoleReporter, report: CheckReport) -> None:
    reporter.header("HTML STRUCTURE CHECK")
    content = _read_text(root / "index.html", reporter, report)
    if content is not None:
        check_content(content, HTML_CHECKS, reporter, report)


def check_javascript_modules(root: Path, reporter: ConsoleReporter, report: CheckReport) -> None:
    reporter.header("JAVASCRIPT MODULES CHECK")
    for relative, checks in MODULE_CHECKS.items():
        content = _read_text(root / relative, reporter, report)
        if content is not None:
            check_content(content, checks, reporter, report, label=relative)


def check_static_server(
    sources: Sequence[Path],
    reporter: ConsoleReporter,
    report: CheckReport,
) -> None:
    reporter.header("STATIC SERVER CHECK")
    contents: list[str] = []
    for source in sources:
        content = _read_text(source, reporter, report)
        if content is not None:
            contents.append(content)
    if contents:
        check_content("\n".join(contents), SERVER_CHECKS, reporter, report, label="static server")


def check_package_scripts(root: Path, reporter: ConsoleReporter, report: CheckReport) -> None:
    reporter.header("PACKAGE SCRIPTS CHECK")
    content = _read_text(root / "package.json", reporter, report)
    if content is None:
        return
    try:
        package = json.loads(content)
    except json.JSONDecodeError as exc:
        reporter.log(f"Error checking package.json: {exc}", STATUS_FAIL, report)
        return

    scripts = package.get("scripts") if isinstance(package, dict) else None
    if not scripts:
        reporter.log("No scripts defined in package.json", STATUS_WARN, report)
        return

    for name, command in scripts.items():
        reporter.log(f"NPM script '{name}': {command}", STATUS_PASS, report)
    if any(name in scripts for name in STARTUP_SCRIPTS):
        reporter.log("Essential startup scripts available", STATUS_PASS, report)
    else:
        reporter.log("No startup scripts found", STATUS_WARN, report)


def check_documentation(root: Path, reporter: ConsoleReporter, report: CheckReport) -> None:
    reporter.header("DOCUMENTATION CHECK")
    for relative, description in DOCUMENTS:
        check_file_exists(root / relative, description, reporter, report)


def run_health_check(
    root: Path,
    reporter: ConsoleReporter,
    *,
    server_sources: Sequence[Path] = SERVER_SOURCES,
) -> CheckReport:
    report = CheckReport()
    reporter.log(f"Starting comprehensive health check of {root}...")
    check_environment(root, reporter, report)
    check_core_files(root, reporter, report)
    check_html_structure(root, reporter, report)
    check_javascript_modules(root, reporter, report)
    check_static_server(server_sources, reporter, report)
    check_package_scripts(root, reporter, report)
    check_documentation(root, reporter, report)

    reporter.header("STATIC SERVER LIVE TEST")
    reporter.log("Live server checks run separately: python tools/verify_server.py", STATUS_INFO)
    reporter.log(f"Manual start: python server.py 8080 --root {root}", STATUS_INFO)
    return report


def _read_text(path: Path, reporter: ConsoleReporter, report: CheckReport) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        reporter.log(f"Error reading {path.name}: {exc}", STATUS_FAIL, report)
        return None


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="WhyLayer component health check")
    parser.add_argument("--root", default=str(REPO_ROOT / STATIC_DIR), help="web application root to inspect")
    parser.add_argument("--no-color", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    reporter = ConsoleReporter(use_color=False if args.no_color else None)
    reporter.banner("WhyLayer Health Check System", "Verifying All Processes")
    report = run_health_check(Path(args.root).resolve(), reporter)
    return reporter.summary(report, title="HEALTH CHECK SUMMARY")


if __name__ == "__main__":
    raise SystemExit(main())
