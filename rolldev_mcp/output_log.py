"""
Output redirection for long-running roll commands.

Writes the full stdout/stderr of a command to a log file under the system
temp directory and returns a short preview for the tool response.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from pathlib import Path
import tempfile
import uuid

from rolldev_mcp.executor import ExecutionResult

logger = logging.getLogger("rolldev-mcp.output")

DEFAULT_LOG_DIR_NAME = "rolldev-mcp-logs"
DEFAULT_PREVIEW_CHARS = 500


@dataclass
class OutputLog:
    """A written log file plus the inline preview of its stdout."""

    path: Path
    preview: str
    truncated: bool
    total_chars: int


def log_dir(dir_name: str = DEFAULT_LOG_DIR_NAME) -> Path:
    """Directory for output logs, created on demand."""
    path = Path(tempfile.gettempdir()) / dir_name
    path.mkdir(parents=True, exist_ok=True)
    return path


def _log_filename(tool: str, now: datetime) -> str:
    stamp = now.strftime("%Y%m%d-%H%M%S-%f")
    return f"{tool}-{stamp}-{uuid.uuid4().hex[:8]}.log"


def make_preview(text: str, limit: int = DEFAULT_PREVIEW_CHARS) -> tuple[str, bool]:
    """First `limit` characters of text and whether anything was cut."""
    if len(text) <= limit:
        return text, False
    return text[:limit], True


def write_output_log(
    tool: str,
    command: str,
    cwd: str,
    result: ExecutionResult,
    dir_name: str = DEFAULT_LOG_DIR_NAME,
    preview_chars: int = DEFAULT_PREVIEW_CHARS,
) -> OutputLog:
    """
    Write a command's full output to a timestamped log file.

    Args:
        tool: Tool name, used as the filename prefix
        command: Command string as shown to the user
        cwd: Working directory the command ran in
        result: Execution result to record
        dir_name: Subdirectory name inside the system temp dir
        preview_chars: Length of the stdout preview

    Returns:
        OutputLog with the file path and stdout preview
    """
    now = datetime.now()
    path = log_dir(dir_name) / _log_filename(tool, now)

    lines = [
        f"Command: {command}",
        f"Working directory: {cwd}",
        f"Timestamp: {now.isoformat()}",
        f"Exit Code: {result.exit_code}",
    ]
    if result.timed_out:
        lines.append("Timed out: yes")
    lines += [
        "",
        "=== STDOUT ===",
        result.stdout,
        "",
        "=== STDERR ===",
        result.stderr,
        "",
    ]
    path.write_text("\n".join(lines), encoding="utf-8")
    logger.info(f"Wrote {len(result.stdout) + len(result.stderr)} chars of output to {path}")

    preview, truncated = make_preview(result.stdout, preview_chars)
    return OutputLog(
        path=path,
        preview=preview,
        truncated=truncated,
        total_chars=len(result.stdout),
    )
