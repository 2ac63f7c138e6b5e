"""
Command dispatcher for RollDev tools.

Each operation validates its inputs, builds the `roll` argument vector, runs
it through the process executor and renders a ToolResponse. Validation and
launch errors are caught here and rendered; nothing is retried.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import json
import logging
import os

from rolldev_mcp import commands
from rolldev_mcp.config import RollDevMcpConfig
from rolldev_mcp.errors import LaunchError, PathNotFoundError, RollDevError
from rolldev_mcp.executor import ExecutionResult, format_command, run_process
from rolldev_mcp.output_log import OutputLog, write_output_log
from rolldev_mcp.parser import parse_environment_list

logger = logging.getLogger("rolldev-mcp.dispatcher")

Runner = Callable[..., Awaitable[ExecutionResult]]


@dataclass
class ToolResponse:
    """Rendered tool result: text for the MCP host plus an error flag."""

    text: str
    is_error: bool = False


def _output_lines(result: ExecutionResult, log: OutputLog | None) -> list[str]:
    if log is None:
        return [
            "Output:",
            result.stdout or "(no output)",
            "",
            "Errors:",
            result.stderr or "(no errors)",
        ]
    preview = log.preview or "(no output)"
    if log.truncated:
        preview += f"\n... (truncated, {log.total_chars} characters total)"
    return [
        f"Full output written to: {log.path}",
        "",
        "Output preview:",
        preview,
    ]


def render_result(
    description: str,
    command: str,
    cwd: str,
    result: ExecutionResult,
    log: OutputLog | None = None,
) -> ToolResponse:
    """Render a completed (or timed out) command."""
    status = "completed successfully" if result.success else "failed"
    lines = [
        f"{description} {status}!",
        "",
        f"Command: {command}",
        f"Working directory: {cwd}",
        f"Exit Code: {result.exit_code}",
    ]
    if result.timed_out:
        lines.append("Timed out: yes")
    lines.append("")
    lines += _output_lines(result, log)
    return ToolResponse("\n".join(lines), is_error=not result.success)


def render_error(error: Exception, command: str, cwd: str) -> ToolResponse:
    """Render a validation or launch failure with any partial output."""
    stdout = getattr(error, "stdout", "") or ""
    stderr = getattr(error, "stderr", "") or ""
    lines = [
        "Failed to execute command:",
        "",
        f"Command: {command}",
        f"Working directory: {cwd}",
        f"Error: {error}",
        "",
        "Output:",
        stdout or "(no output)",
        "",
        "Errors:",
        stderr or "(no errors)",
    ]
    return ToolResponse("\n".join(lines), is_error=True)


class Dispatcher:
    """Runs RollDev operations against the configured `roll` binary."""

    def __init__(self, config: RollDevMcpConfig, runner: Runner = run_process):
        self.config = config
        self.runner = runner

    @property
    def binary(self) -> str:
        return self.config.roll.binary

    async def _execute(self, tool: str, argv: list[str], cwd: str) -> ExecutionResult:
        spec = commands.COMMAND_SPECS[tool]
        timeout = self.config.roll.timeout_for(spec.timeout_family)
        logger.info(f"Running {format_command(self.binary, argv)} in {cwd}")
        return await self.runner(
            self.binary,
            argv,
            cwd=cwd,
            timeout=timeout,
            kill_grace=self.config.roll.kill_grace,
        )

    def _wants_file(self, output_to_file: bool | None) -> bool:
        if output_to_file is None:
            return self.config.output.output_to_file
        return bool(output_to_file)

    def _write_log(self, tool: str, command: str, cwd: str, result: ExecutionResult) -> OutputLog:
        return write_output_log(
            tool,
            command,
            cwd,
            result,
            dir_name=self.config.output.log_dir_name,
            preview_chars=self.config.output.preview_chars,
        )

    def _maybe_write_log(
        self,
        tool: str,
        command: str,
        cwd: str,
        result: ExecutionResult,
        output_to_file: bool | None,
    ) -> OutputLog | None:
        """Write the output log if requested. None means render inline."""
        if not self._wants_file(output_to_file):
            return None
        try:
            return self._write_log(tool, command, cwd, result)
        except OSError as e:
            logger.warning(f"{tool}: could not write output log, returning output inline: {e}")
            return None

    async def _run_in_project(
        self,
        tool: str,
        project_path: str | None,
        build_args: Callable[[], list[str]],
        description: str,
        output_to_file: bool | None = None,
    ) -> ToolResponse:
        """Shared flow for every operation that runs inside a project directory."""
        command = self.binary
        cwd = project_path or "(none)"
        try:
            try:
                argv = build_args()
            except RollDevError:
                # project_path is reported first when both are bad
                cwd = commands.resolve_project_path(project_path)
                raise
            command = format_command(self.binary, argv)
            cwd = commands.resolve_project_path(project_path)
            result = await self._execute(tool, argv, cwd)
        except RollDevError as e:
            logger.warning(f"{tool} failed before completion: [{e.code}] {e}")
            return render_error(e, command, cwd)

        log = self._maybe_write_log(tool, command, cwd, result, output_to_file)
        return render_result(description, command, cwd, result, log)

    async def start_project(self, project_path: str | None, output_to_file: bool | None = None) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_start_project",
            project_path,
            commands.start_project_args,
            "Starting RollDev project environment",
            output_to_file,
        )

    async def stop_project(self, project_path: str | None, output_to_file: bool | None = None) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_stop_project",
            project_path,
            commands.stop_project_args,
            "Stopping RollDev project environment",
            output_to_file,
        )

    async def start_svc(self, project_path: str | None, output_to_file: bool | None = None) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_start_svc",
            project_path,
            commands.start_svc_args,
            "Starting RollDev system services",
            output_to_file,
        )

    async def stop_svc(self, project_path: str | None, output_to_file: bool | None = None) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_stop_svc",
            project_path,
            commands.stop_svc_args,
            "Stopping RollDev system services",
            output_to_file,
        )

    async def db_query(
        self,
        project_path: str | None,
        query: str | None,
        database: str = "magento",
        output_to_file: bool | None = None,
    ) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_db_query",
            project_path,
            lambda: commands.db_query_args(query),
            f"Running database query in {database}",
            output_to_file,
        )

    async def php_script(
        self,
        project_path: str | None,
        script_path: str | None,
        args: list[str] | None = None,
        output_to_file: bool | None = None,
    ) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_php_script",
            project_path,
            lambda: commands.php_script_args(script_path, args),
            f"Running PHP script: {script_path}",
            output_to_file,
        )

    async def magento_cli(
        self,
        project_path: str | None,
        command: str | None,
        args: list[str] | None = None,
        output_to_file: bool | None = None,
    ) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_magento_cli",
            project_path,
            lambda: commands.magento_cli_args(command, args),
            f"Running Magento CLI: {self.binary} magento {command}",
            output_to_file,
        )

    async def composer(
        self,
        project_path: str | None,
        command: str | None,
        output_to_file: bool | None = None,
    ) -> ToolResponse:
        return await self._run_in_project(
            "rolldev_composer",
            project_path,
            lambda: commands.composer_args(command),
            "Composer command",
            output_to_file,
        )

    async def magento2_init(
        self,
        project_name: str | None,
        magento_version: str | None = None,
        target_directory: str | None = None,
        output_to_file: bool | None = None,
        cwd: str | None = None,
    ) -> ToolResponse:
        """
        Initialize a Magento 2 project with `roll magento2-init`.

        magento_version None means the configured default; an empty string
        omits the version argument. Without target_directory the command runs
        in cwd (the server's working directory when not given).
        """
        version = (
            self.config.roll.default_magento_version if magento_version is None else magento_version
        )
        command = self.binary
        workdir = cwd or os.getcwd()
        try:
            argv = commands.magento2_init_args(project_name, version, target_directory)
            command = format_command(self.binary, argv)
            if target_directory:
                workdir = os.path.abspath(target_directory)
                if not os.path.isdir(workdir):
                    raise PathNotFoundError(f"Target directory does not exist: {workdir}")
            result = await self._execute("rolldev_magento2_init", argv, workdir)
        except RollDevError as e:
            logger.warning(f"rolldev_magento2_init failed before completion: [{e.code}] {e}")
            lines = [
                "Failed to execute Magento 2 initialization:",
                "",
                f"Project Name: {project_name}",
                f"Magento Version: {version or '(default)'}",
                f"Command: {command}",
                f"Working directory: {workdir}",
                f"Error: {e}",
                "",
                "Output:",
                getattr(e, "stdout", "") or "(no output)",
                "",
                "Errors:",
                getattr(e, "stderr", "") or "(no errors)",
            ]
            return ToolResponse("\n".join(lines), is_error=True)

        log = self._maybe_write_log(
            "rolldev_magento2_init", command, workdir, result, output_to_file
        )

        if not result.success:
            lines = [
                f"Failed to initialize Magento 2 project '{project_name}'!",
                "",
                f"Command: {command}",
                f"Working directory: {workdir}",
                f"Exit Code: {result.exit_code}",
            ]
            if result.timed_out:
                lines.append("Timed out: yes")
            lines.append("")
            lines += _output_lines(result, log)
            return ToolResponse("\n".join(lines), is_error=True)

        project_dir = os.path.join(workdir, project_name)
        lines = [
            f"Magento 2 project '{project_name}' initialized successfully!",
            "",
            f"Command: {command}",
            f"Magento Version: {version or '(default)'}",
            f"Project Path: {project_dir}",
            "",
            "The command has automatically:",
            "- Configured compatible software versions",
            "- Set up the Docker environment",
            "- Generated SSL certificates",
            "- Installed Magento via Composer",
            "- Configured database, Redis, and search engine",
            "- Created admin user with 2FA",
            "- Set developer mode",
            "",
            "Access URLs:",
            f"- Frontend: https://app.{project_name}.test/",
            f"- Admin Panel: https://app.{project_name}.test/shopmanager/",
            "",
            "Admin credentials are saved in admin-credentials.txt in the project directory.",
            "",
        ]
        lines += _output_lines(result, log)
        return ToolResponse("\n".join(lines))

    async def list_environments(self, cwd: str | None = None) -> ToolResponse:
        """Run `roll status` and return the parsed environments as JSON."""
        argv = commands.status_args()
        command = format_command(self.binary, argv)
        workdir = cwd or os.getcwd()

        try:
            result = await self._execute("rolldev_list_environments", argv, workdir)
        except LaunchError as e:
            payload = {
                "success": False,
                "command": command,
                "exit_code": -1,
                "environments": [],
                "error": str(e),
                "raw_output": e.stdout,
                "raw_errors": e.stderr,
            }
            return ToolResponse(json.dumps(payload, indent=2), is_error=True)

        if result.success:
            environments = parse_environment_list(result.stdout)
            payload = {
                "success": True,
                "command": command,
                "exit_code": result.exit_code,
                "environments": [env.to_dict() for env in environments],
                "raw_output": result.stdout,
            }
            return ToolResponse(json.dumps(payload, indent=2))

        payload = {
            "success": False,
            "command": command,
            "exit_code": result.exit_code,
            "environments": [],
            "error": result.stderr or "Unknown error",
            "raw_output": result.stdout,
        }
        if result.timed_out:
            payload["timed_out"] = True
        return ToolResponse(json.dumps(payload, indent=2), is_error=True)

    async def environment_paths(self, cwd: str | None = None) -> list[dict]:
        """Name and path of each running environment; empty on any failure."""
        try:
            result = await self._execute(
                "rolldev_list_environments", commands.status_args(), cwd or os.getcwd()
            )
        except LaunchError:
            return []
        if not result.success:
            return []
        return [
            {"name": env.name, "path": env.path}
            for env in parse_environment_list(result.stdout)
        ]
