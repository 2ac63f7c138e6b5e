#!/usr/bin/env python3
"""
RollDev MCP Server - Model Context Protocol interface for RollDev environments.

Supports stdio transport for Claude Desktop and other MCP hosts.
Run with: python -m rolldev_mcp.server

Tools:
- rolldev_list_environments: Running environments as structured JSON
- rolldev_start_project / rolldev_stop_project: roll env up/down
- rolldev_start_svc / rolldev_stop_svc: roll svc up/down
- rolldev_db_query: roll db -e
- rolldev_php_script: roll cli php
- rolldev_magento_cli: roll magento
- rolldev_composer: roll composer
- rolldev_magento2_init: roll magento2-init
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import sys
import time
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from rolldev_mcp import __version__
from rolldev_mcp.config import RollDevMcpConfig, load_config
from rolldev_mcp.dispatcher import Dispatcher, ToolResponse
from rolldev_mcp.observability import generate_correlation_id, setup_logging

# stdout carries the MCP stream; logs go to stderr
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("rolldev-mcp")

_PROJECT_PATH = {
    "type": "string",
    "description": "Path to the project directory",
}

_OUTPUT_TO_FILE = {
    "type": "boolean",
    "description": "Write full stdout/stderr to a log file in the temp directory and return only the path and a 500-character preview",
    "default": False,
}


def _project_schema(extra: dict | None = None, required: tuple[str, ...] = ()) -> dict:
    """Input schema for a tool that runs inside a project directory."""
    return {
        "type": "object",
        "properties": {
            "project_path": dict(_PROJECT_PATH),
            **(extra or {}),
            "output_to_file": dict(_OUTPUT_TO_FILE),
        },
        "required": ["project_path", *required],
    }


TOOLS: list[Tool] = [
    Tool(
        name="rolldev_list_environments",
        description="List all running RollDev environments with their directories (returns structured JSON)",
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    Tool(
        name="rolldev_start_project",
        description="Start a RollDev project environment",
        inputSchema=_project_schema(),
    ),
    Tool(
        name="rolldev_stop_project",
        description="Stop a RollDev project environment",
        inputSchema=_project_schema(),
    ),
    Tool(
        name="rolldev_start_svc",
        description="Start RollDev system services",
        inputSchema=_project_schema(),
    ),
    Tool(
        name="rolldev_stop_svc",
        description="Stop RollDev system services",
        inputSchema=_project_schema(),
    ),
    Tool(
        name="rolldev_db_query",
        description="Run a SQL query in the RollDev database",
        inputSchema=_project_schema(
            {
                "query": {"type": "string", "description": "SQL query to execute"},
                "database": {
                    "type": "string",
                    "description": "Database name (optional, defaults to magento)",
                    "default": "magento",
                },
            },
            required=("query",),
        ),
    ),
    Tool(
        name="rolldev_php_script",
        description="Run a PHP script inside the php-fpm container",
        inputSchema=_project_schema(
            {
                "script_path": {
                    "type": "string",
                    "description": "Path to the PHP script relative to project root",
                },
                "args": {
                    "type": "array",
                    "description": "Additional arguments to pass to the script",
                    "items": {"type": "string"},
                    "default": [],
                },
            },
            required=("script_path",),
        ),
    ),
    Tool(
        name="rolldev_magento_cli",
        description="Run roll magento command inside the php-fpm container",
        inputSchema=_project_schema(
            {
                "command": {
                    "type": "string",
                    "description": "Magento CLI command (without 'bin/magento' prefix)",
                },
                "args": {
                    "type": "array",
                    "description": "Additional arguments for the command",
                    "items": {"type": "string"},
                    "default": [],
                },
            },
            required=("command",),
        ),
    ),
    Tool(
        name="rolldev_composer",
        description="Run Composer commands inside the php-fpm container",
        inputSchema=_project_schema(
            {
                "command": {
                    "type": "string",
                    "description": "Composer command to execute (e.g., 'install', 'update', 'require symfony/console', 'require-commerce')",
                },
            },
            required=("command",),
        ),
    ),
    Tool(
        name="rolldev_magento2_init",
        description="Initialize a new Magento 2 project using RollDev's magento2-init command with automatic version configuration",
        inputSchema={
            "type": "object",
            "properties": {
                "project_name": {
                    "type": "string",
                    "description": "Name of the Magento 2 project (lowercase letters, numbers, and hyphens only)",
                },
                "magento_version": {
                    "type": "string",
                    "description": "Magento version to install (default: 2.4.x). Examples: 2.4.x, 2.4.7, 2.4.7-p3, 2.4.8",
                    "default": "2.4.x",
                },
                "target_directory": {
                    "type": "string",
                    "description": "Directory to create project in (optional, defaults to current directory). Project will be created in a subdirectory named after the project.",
                    "default": "",
                },
                "output_to_file": dict(_OUTPUT_TO_FILE),
            },
            "required": ["project_name"],
        },
    ),
]


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


class ToolCallFailed(Exception):
    """Carries an error response text back through the MCP call_tool decorator."""


class RollDevMcpServer:
    """RollDev MCP Server implementation."""

    def __init__(self, config: RollDevMcpConfig, dispatcher: Dispatcher | None = None):
        self.config = config
        self.server = Server("rolldev-server", version=__version__)
        self.dispatcher = dispatcher or Dispatcher(config)
        self.tools = list(TOOLS)
        self.tool_handlers: dict[str, Callable[[dict], Awaitable[ToolResponse]]] = {
            "rolldev_list_environments": self._handle_list_environments,
            "rolldev_start_project": self._handle_start_project,
            "rolldev_stop_project": self._handle_stop_project,
            "rolldev_start_svc": self._handle_start_svc,
            "rolldev_stop_svc": self._handle_stop_svc,
            "rolldev_db_query": self._handle_db_query,
            "rolldev_php_script": self._handle_php_script,
            "rolldev_magento_cli": self._handle_magento_cli,
            "rolldev_composer": self._handle_composer,
            "rolldev_magento2_init": self._handle_magento2_init,
        }
        self._register_handlers()
        logger.info(f"RollDev MCP Server initialized ({len(self.tools)} tools, binary={config.roll.binary})")

    def _register_handlers(self):
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            logger.debug("list_tools called")
            return self.tools

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict) -> list[TextContent]:
            response = await self.call(name, arguments)
            if response.is_error:
                # Raising marks the MCP result with isError
                raise ToolCallFailed(response.text)
            return [TextContent(type="text", text=response.text)]

    async def call(self, name: str, arguments: dict | None) -> ToolResponse:
        """Dispatch one tool call with logging. Never raises."""
        cid = generate_correlation_id()
        start_time = time.time()
        arguments = arguments or {}

        logger.info(f"call_tool: {name}", extra={"correlation_id": cid, "tool": name})

        handler = self.tool_handlers.get(name)
        try:
            if handler is None:
                response = ToolResponse(f"Unknown tool: {name}", is_error=True)
            else:
                response = await handler(arguments)
        except Exception as e:
            logger.exception(
                f"Tool {name} failed: {e}", extra={"correlation_id": cid, "tool": name}
            )
            response = ToolResponse(f"Tool {name} failed: {e}", is_error=True)

        latency_ms = (time.time() - start_time) * 1000
        logger.info(
            f"call_tool done: {name}",
            extra={
                "correlation_id": cid,
                "tool": name,
                "latency_ms": round(latency_ms, 2),
                "status": "error" if response.is_error else "ok",
            },
        )
        return response

    async def _handle_list_environments(self, args: dict) -> ToolResponse:
        return await self.dispatcher.list_environments()

    async def _handle_start_project(self, args: dict) -> ToolResponse:
        return await self.dispatcher.start_project(
            args.get("project_path"), args.get("output_to_file")
        )

    async def _handle_stop_project(self, args: dict) -> ToolResponse:
        return await self.dispatcher.stop_project(
            args.get("project_path"), args.get("output_to_file")
        )

    async def _handle_start_svc(self, args: dict) -> ToolResponse:
        return await self.dispatcher.start_svc(
            args.get("project_path"), args.get("output_to_file")
        )

    async def _handle_stop_svc(self, args: dict) -> ToolResponse:
        return await self.dispatcher.stop_svc(
            args.get("project_path"), args.get("output_to_file")
        )

    async def _handle_db_query(self, args: dict) -> ToolResponse:
        return await self.dispatcher.db_query(
            args.get("project_path"),
            args.get("query"),
            database=args.get("database") or "magento",
            output_to_file=args.get("output_to_file"),
        )

    async def _handle_php_script(self, args: dict) -> ToolResponse:
        return await self.dispatcher.php_script(
            args.get("project_path"),
            args.get("script_path"),
            _as_list(args.get("args")),
            output_to_file=args.get("output_to_file"),
        )

    async def _handle_magento_cli(self, args: dict) -> ToolResponse:
        return await self.dispatcher.magento_cli(
            args.get("project_path"),
            args.get("command"),
            _as_list(args.get("args")),
            output_to_file=args.get("output_to_file"),
        )

    async def _handle_composer(self, args: dict) -> ToolResponse:
        return await self.dispatcher.composer(
            args.get("project_path"),
            args.get("command"),
            output_to_file=args.get("output_to_file"),
        )

    async def _handle_magento2_init(self, args: dict) -> ToolResponse:
        return await self.dispatcher.magento2_init(
            args.get("project_name"),
            magento_version=args.get("magento_version"),
            target_directory=args.get("target_directory") or None,
            output_to_file=args.get("output_to_file"),
        )

    async def run(self):
        """Run the server with stdio transport."""
        logger.info("Starting RollDev MCP server (stdio transport)")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def configure_logging(config: RollDevMcpConfig) -> None:
    """Apply log level / structured logging from config."""
    global logger  # noqa: PLW0603
    if config.observability.enabled:
        logger = setup_logging(config.observability, "rolldev-mcp")
    else:
        log_level = getattr(logging, config.server.log_level.upper(), logging.INFO)
        logging.getLogger().setLevel(log_level)
        logger.setLevel(log_level)


def serve(config: RollDevMcpConfig) -> None:
    """Configure logging and run the stdio server until the host disconnects."""
    configure_logging(config)

    logger.info(f"Config loaded: enabled={config.enabled}, binary={config.roll.binary}")
    logger.info(
        f"Timeouts: general={config.roll.timeout}s, dependency={config.roll.dependency_timeout}s, "
        f"init={config.roll.init_timeout}s"
    )

    if not config.enabled:
        logger.warning("MCP server disabled in config, exiting")
        sys.exit(0)

    server = RollDevMcpServer(config)
    asyncio.run(server.run())


def main():
    """Entry point for RollDev MCP server."""
    import argparse

    parser = argparse.ArgumentParser(description="RollDev MCP Server")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to rolldev-mcp.toml config file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Override log level",
    )
    args = parser.parse_args()

    config = load_config(args.config)
    if args.log_level:
        config.server.log_level = args.log_level
        config.observability.log_level = args.log_level

    serve(config)


if __name__ == "__main__":
    main()
