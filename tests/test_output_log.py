"""Tests for output log files."""

from pathlib import Path
import tempfile

from rolldev_mcp.executor import ExecutionResult
from rolldev_mcp.output_log import log_dir, make_preview, write_output_log


def test_make_preview():
    assert make_preview("short", 10) == ("short", False)
    assert make_preview("a" * 11, 10) == ("a" * 10, True)
    assert make_preview("a" * 10, 10) == ("a" * 10, False)


def test_log_dir_under_system_temp():
    path = log_dir()
    assert path == Path(tempfile.gettempdir()) / "rolldev-mcp-logs"
    assert path.is_dir()


def test_write_output_log_sections():
    result = ExecutionResult(stdout="hello\n", stderr="oops\n", exit_code=1)
    log = write_output_log("rolldev_composer", "roll composer install", "/srv/shop", result)

    text = log.path.read_text()
    assert text.startswith("Command: roll composer install\nWorking directory: /srv/shop\n")
    assert "Timestamp: " in text
    assert "Exit Code: 1" in text
    assert text.index("=== STDOUT ===") < text.index("hello") < text.index("=== STDERR ===")
    assert "oops" in text
    assert log.preview == "hello\n"
    assert log.truncated is False


def test_filenames_are_unique():
    result = ExecutionResult(stdout="", stderr="", exit_code=0)
    paths = {
        write_output_log("rolldev_start_project", "roll env up", "/srv", result).path
        for _ in range(5)
    }
    assert len(paths) == 5


def test_timeout_is_recorded():
    result = ExecutionResult(stdout="", stderr="[Command timed out after 5s]", exit_code=-1, timed_out=True)
    log = write_output_log("rolldev_start_svc", "roll svc up", "/srv", result, preview_chars=10)
    assert "Timed out: yes" in log.path.read_text()
