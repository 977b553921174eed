"""Console reporting for verification tools.

Check results are collected in an explicit ``CheckReport`` that callers pass
around; ``ConsoleReporter`` only formats lines.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TextIO

STATUS_PASS = "pass"
STATUS_FAIL = "fail"
STATUS_WARN = "warn"
STATUS_INFO = "info"

COLORS = {
    "reset": "\x1b[0m",
    "green": "\x1b[32m",
    "red": "\x1b[31m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[36m",
    "magenta": "\x1b[35m",
    "bold": "\x1b[1m",
}

_PREFIXES = {
    STATUS_PASS: ("green", "✓ PASS"),
    STATUS_FAIL: ("red", "✗ FAIL"),
    STATUS_WARN: ("yellow", "⚠ WARN"),
    STATUS_INFO: ("blue", "ℹ INFO"),
}


@dataclass(slots=True)
class CheckReport:
    passed: int = 0
    failed: int = 0
    warnings: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0

    @property
    def pass_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.passed / self.total * 100

    def record(self, status: str) -> None:
        if status == STATUS_PASS:
            self.passed += 1
        elif status == STATUS_FAIL:
            self.failed += 1
        elif status == STATUS_WARN:
            self.warnings += 1


class ConsoleReporter:
    def __init__(self, stream: TextIO | None = None, *, use_color: bool | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        if use_color is None:
            use_color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_color = use_color

    def paint(self, text: str, *styles: str) -> str:
        if not self.use_color or not styles:
            return text
        codes = "".join(COLORS[style] for style in styles)
        return f"{codes}{text}{COLORS['reset']}"

    def log(self, message: str, status: str = STATUS_INFO, report: CheckReport | None = None) -> None:
        """Write one timestamped status line and count it in ``report`` if given."""
        color, label = _PREFIXES[status]
        timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        self._write(f"[{timestamp}] {self.paint(label, color)} {message}")
        if report is not None:
            report.record(status)

    def line(self, text: str = "", *styles: str) -> None:
        self._write(self.paint(text, *styles))

    def header(self, text: str) -> None:
        rule = "=" * 40
        self._write("")
        self._write(self.paint(rule, "bold", "blue"))
        self._write(self.paint(text, "bold", "blue"))
        self._write(self.paint(rule, "bold", "blue"))
        self._write("")

    def banner(self, *lines: str, color: str = "blue") -> None:
        width = max(len(line) for line in lines) + 6
        self._write("")
        self._write(self.paint("╔" + "═" * width + "╗", "bold", color))
        for line in lines:
            self._write(self.paint(f"║   {line.ljust(width - 3)}║", "bold", color))
        self._write(self.paint("╚" + "═" * width + "╝", "bold", color))
        self._write("")

    def summary(self, report: CheckReport, *, title: str = "SUMMARY") -> int:
        """Print totals and return the process exit code for ``report``."""
        self.header(title)
        self._write(self.paint(f"Total Checks: {report.total}", "bold"))
        self._write(self.paint(f"Passed: {report.passed}", "green", "bold"))
        self._write(self.paint(f"Failed: {report.failed}", "red", "bold"))
        if report.warnings:
            self._write(self.paint(f"Warnings: {report.warnings}", "yellow", "bold"))
        self._write(self.paint(f"Pass Rate: {report.pass_rate:.2f}%", "blue", "bold"))
        self._write("")
        if report.ok:
            self._write(self.paint("✓ ALL CHECKS PASSED", "green", "bold"))
            return 0
        self._write(self.paint("✗ SOME CHECKS FAILED", "red", "bold"))
        return 1

    def _write(self, line: str) -> None:
        print(line, file=self.stream, flush=True)
