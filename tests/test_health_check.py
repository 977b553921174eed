import io
import json
from pathlib import Path

import pytest

from report import STATUS_FAIL, STATUS_WARN, CheckReport, ConsoleReporter
from tools.health_check import (
    ContentCheck,
    check_content,
    check_file_exists,
    check_package_scripts,
    check_script_structure,
    contains_any,
    main,
    matches,
    min_length,
    run_health_check,
)

INDEX_HTML = """<!DOCTYPE html>
<html>
<head><title>WhyLayer</title><script src="https://cdn.tailwindcss.com"></script></head>
<body><script src="app.js"></script></body>
</html>
"""

APP_JS = """const API_BASE_URL = "/api";
let replayState = {};
class MemoryManager {}
async function fetchFromAPI(path) { return fetch(API_BASE_URL + path); }
"""


@pytest.fixture()
def reporter() -> ConsoleReporter:
    return ConsoleReporter(io.StringIO(), use_color=False)


@pytest.fixture()
def app_root(tmp_path: Path) -> Path:
    (tmp_path / ".env").write_text("GOOGLE_API_KEY=abc\nMONGO_URI=mongodb://localhost\n", encoding="utf-8")
    (tmp_path / "env.js").write_text("window.ENV = { mode: 'dev' };\nconst ready = true;\n", encoding="utf-8")
    (tmp_path / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (tmp_path / "app.js").write_text(APP_JS, encoding="utf-8")
    (tmp_path / "neural.js").write_text("function layer() {}\n" * 80, encoding="utf-8")
    (tmp_path / "voice.js").write_text("function listen() { return 'speech'; }\n", encoding="utf-8")
    (tmp_path / "data.js").write_text("const data = { mock: true };\n", encoding="utf-8")
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "whylayer", "scripts": {"start": "node server.js", "dev": "vite"}}),
        encoding="utf-8",
    )
    for name in ("README.md", "BACKEND_SETUP.md", "FULLSTACK_SETUP.md", "PROBLEM_AND_SOLUTION.md"):
        (tmp_path / name).write_text(f"# {name}\n", encoding="utf-8")
    return tmp_path


def test_predicates() -> None:
    assert contains_any("voice", "speech")("speech synthesis")
    assert not contains_any("voice")("nothing here")
    assert matches(r"<HEAD>")("<html><head>")
    assert min_length(3)("abcd")
    assert not min_length(3)("abc")


def test_complete_root_has_no_failures(app_root: Path, reporter: ConsoleReporter) -> None:
    report = run_health_check(app_root, reporter)

    assert report.failed == 0
    assert report.warnings == 0
    assert report.passed > 20


def test_missing_files_are_failures(app_root: Path, reporter: ConsoleReporter) -> None:
    (app_root / "neural.js").unlink()
    (app_root / "README.md").unlink()

    report = run_health_check(app_root, reporter)
    output = reporter.stream.getvalue()

    assert not report.ok
    assert "Neural network module: neural.js NOT FOUND" in output
    assert "Main README: README.md NOT FOUND" in output


def test_optional_content_only_warns(app_root: Path, reporter: ConsoleReporter) -> None:
    (app_root / ".env").write_text("GOOGLE_API_KEY=abc\n", encoding="utf-8")
    (app_root / "app.js").write_text("function main() {}\n", encoding="utf-8")

    report = run_health_check(app_root, reporter)

    assert report.ok
    assert report.warnings == 5


def test_check_file_exists(tmp_path: Path, reporter: ConsoleReporter) -> None:
    report = CheckReport()
    (tmp_path / "present.txt").write_text("x", encoding="utf-8")

    assert check_file_exists(tmp_path / "present.txt", "Present", reporter, report)
    assert not check_file_exists(tmp_path / "absent.txt", "Absent", reporter, report)
    assert (report.passed, report.failed) == (1, 1)


def test_check_content_uses_severity(reporter: ConsoleReporter) -> None:
    report = CheckReport()
    checks = (
        ContentCheck("required", contains_any("needle"), STATUS_FAIL),
        ContentCheck("optional", contains_any("absent"), STATUS_WARN),
    )

    check_content("haystack with needle", checks, reporter, report, label="doc")

    assert (report.passed, report.failed, report.warnings) == (1, 0, 1)
    assert "doc: optional missing" in reporter.stream.getvalue()


def test_script_structure(tmp_path: Path, reporter: ConsoleReporter) -> None:
    report = CheckReport()
    (tmp_path / "empty.js").write_text("", encoding="utf-8")
    (tmp_path / "prose.js").write_text("just words", encoding="utf-8")

    check_script_structure(tmp_path / "empty.js", "empty", reporter, report)
    check_script_structure(tmp_path / "prose.js", "prose", reporter, report)
    check_script_structure(tmp_path / "gone.js", "gone", reporter, report)

    assert (report.passed, report.failed, report.warnings) == (0, 2, 1)


def test_package_scripts_invalid_json_fails(tmp_path: Path, reporter: ConsoleReporter) -> None:
    report = CheckReport()
    (tmp_path / "package.json").write_text("{not json", encoding="utf-8")

    check_package_scripts(tmp_path, reporter, report)

    assert report.failed == 1


def test_package_scripts_without_startup_script_warns(tmp_path: Path, reporter: ConsoleReporter) -> None:
    report = CheckReport()
    (tmp_path / "package.json").write_text(json.dumps({"scripts": {"lint": "eslint ."}}), encoding="utf-8")

    check_package_scripts(tmp_path, reporter, report)

    assert (report.passed, report.warnings) == (1, 1)


def test_bundled_sample_root_fails_on_missing_app_files(reporter: ConsoleReporter) -> None:
    sample_root = Path(__file__).resolve().parent.parent / "static"

    report = run_health_check(sample_root, reporter)
    output = reporter.stream.getvalue()

    assert not report.ok
    assert "Main HTML file: index.html" in output
    assert "Neural network module: neural.js NOT FOUND" in output
    assert "Package configuration: package.json NOT FOUND" in output


def test_main_exit_codes(app_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--root", str(app_root), "--no-color"]) == 0
    (app_root / "index.html").unlink()
    assert main(["--root", str(app_root), "--no-color"]) == 1
    assert "HEALTH CHECK SUMMARY" in capsys.readouterr().out
