"""RollDev MCP - RollDev environment operations as MCP tools."""

__version__ = "1.0.0"

from rolldev_mcp.dispatcher import Dispatcher, ToolResponse  # noqa: E402, F401
from rolldev_mcp.errors import (  # noqa: E402, F401
    LaunchError,
    MissingArgumentError,
    PathNotFoundError,
    RollDevError,
)
from rolldev_mcp.executor import ExecutionResult, run_process  # noqa: E402, F401
from rolldev_mcp.parser import EnvironmentRecord, parse_environment_list  # noqa: E402, F401
