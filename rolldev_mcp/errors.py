"""
RollDev MCP error types.

Coded exceptions so tool responses can name the failure category.
"""

from __future__ import annotations


class RollDevError(Exception):
    """Base error for RollDev tool operations."""

    code: str = "ROLLDEV_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class MissingArgumentError(RollDevError):
    """A required tool argument was empty or absent."""

    code = "MISSING_ARGUMENT"


class PathNotFoundError(RollDevError):
    """Resolved project path does not exist."""

    code = "PATH_NOT_FOUND"


class LaunchError(RollDevError):
    """The external program could not be started.

    Carries whatever output was captured before the failure (normally none).
    """

    code = "LAUNCH_FAILED"

    def __init__(
        self,
        message: str,
        *,
        command: str = "",
        cwd: str = "",
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command
        self.cwd = cwd
        self.stdout = stdout
        self.stderr = stderr
