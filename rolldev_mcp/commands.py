"""
Command construction for RollDev tools.

Maps each tool to the `roll` argument vector it runs, a description used in
responses, and the timeout family it belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from rolldev_mcp.errors import MissingArgumentError, PathNotFoundError


@dataclass(frozen=True)
class CommandSpec:
    """Static description of one tool's `roll` invocation."""

    tool: str
    description: str
    timeout_family: str = "general"  # "general" | "dependency" | "init"


COMMAND_SPECS: dict[str, CommandSpec] = {
    spec.tool: spec
    for spec in (
        CommandSpec("rolldev_list_environments", "Listing RollDev environments"),
        CommandSpec("rolldev_start_project", "Starting RollDev project environment"),
        CommandSpec("rolldev_stop_project", "Stopping RollDev project environment"),
        CommandSpec("rolldev_start_svc", "Starting RollDev system services"),
        CommandSpec("rolldev_stop_svc", "Stopping RollDev system services"),
        CommandSpec("rolldev_db_query", "Running database query"),
        CommandSpec("rolldev_php_script", "Running PHP script"),
        CommandSpec("rolldev_magento_cli", "Running Magento CLI"),
        CommandSpec("rolldev_composer", "Composer command", timeout_family="dependency"),
        CommandSpec("rolldev_magento2_init", "Initializing Magento 2 project", timeout_family="init"),
    )
}


def require(value: str | None, name: str) -> str:
    """Return value, or raise MissingArgumentError if it is empty."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingArgumentError(f"{name} is required")
    return value


def resolve_project_path(project_path: str | None) -> str:
    """
    Validate and normalize a caller-supplied project path.

    Trailing slashes are stripped before resolving to an absolute path.

    Raises:
        MissingArgumentError: If project_path is empty or None
        PathNotFoundError: If the resolved path does not exist
    """
    if not project_path:
        raise MissingArgumentError("project_path is required")

    normalized = project_path.rstrip("/") or "/"
    absolute = os.path.abspath(normalized)

    if not Path(absolute).exists():
        raise PathNotFoundError(f"Project directory does not exist: {absolute}")

    return absolute


def start_project_args() -> list[str]:
    return ["env", "up"]


def stop_project_args() -> list[str]:
    return ["env", "down"]


def start_svc_args() -> list[str]:
    return ["svc", "up"]


def stop_svc_args() -> list[str]:
    return ["svc", "down"]


def status_args() -> list[str]:
    return ["status"]


def db_query_args(query: str) -> list[str]:
    return ["db", "-e", require(query, "query")]


def php_script_args(script_path: str, extra: list[str] | None = None) -> list[str]:
    return ["cli", "php", require(script_path, "script_path"), *(extra or [])]


def magento_cli_args(command: str, extra: list[str] | None = None) -> list[str]:
    return ["magento", require(command, "command"), *(extra or [])]


def composer_args(command: str) -> list[str]:
    """Split a composer command string on whitespace: 'require a/b' -> [composer, require, a/b]."""
    return ["composer", *require(command, "command").split()]


def magento2_init_args(
    project_name: str,
    version: str | None = None,
    target_directory: str | None = None,
) -> list[str]:
    """Build magento2-init arguments; version and target are omitted when empty."""
    argv = ["magento2-init", require(project_name, "project_name")]
    if version:
        argv.append(version)
    if target_directory:
        argv.append(target_directory)
    return argv
