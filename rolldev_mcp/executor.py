"""
Process executor for the RollDev MCP server.

Runs one external command to completion or timeout:
- stdin from /dev/null, stdout/stderr captured independently
- timeout sends SIGTERM to the process group, then SIGKILL after a grace window
- spawn failures raise LaunchError instead of returning a result
"""

from __future__ import annotations

import asyncio
import codecs
from dataclasses import dataclass
import logging
import os
import shlex
import signal as sigmod
import time

from rolldev_mcp.errors import LaunchError

logger = logging.getLogger("rolldev-mcp.executor")

# Default wait between SIGTERM and SIGKILL
KILL_GRACE_SEC = 5.0

READ_CHUNK = 4096

TIMEOUT_EXIT_CODE = -1


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one external-process invocation."""

    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def format_command(program: str, args: list[str]) -> str:
    """Render a command line for display."""
    return " ".join([program, *args])


def timeout_marker(timeout: float) -> str:
    return f"[Command timed out after {timeout:g}s]"


async def _drain(stream: asyncio.StreamReader | None, chunks: list[str]) -> None:
    """Append decoded output to chunks until EOF."""
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        data = await stream.read(READ_CHUNK)
        if not data:
            break
        chunks.append(decoder.decode(data))
    tail = decoder.decode(b"", final=True)
    if tail:
        chunks.append(tail)


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    """Signal the process group, falling back to the process itself."""
    try:
        if os.name == "posix":
            # Group outlives the leader while children hold it
            os.killpg(proc.pid, sig)
        elif proc.returncode is None:
            proc.send_signal(sig)
    except ProcessLookupError:
        pass


async def _settle(fut: asyncio.Future, seconds: float) -> bool:
    """Wait up to `seconds` for fut without cancelling it. True if done."""
    done, _ = await asyncio.wait({fut}, timeout=seconds)
    return fut in done


async def _terminate(
    proc: asyncio.subprocess.Process,
    waiter: asyncio.Future,
    grace: float,
) -> None:
    """SIGTERM, wait for grace, then SIGKILL."""
    _signal_group(proc, sigmod.SIGTERM)
    if await _settle(waiter, grace):
        return

    logger.warning(f"Process {proc.pid} ignored SIGTERM, sending SIGKILL")
    _signal_group(proc, getattr(sigmod, "SIGKILL", sigmod.SIGTERM))
    if await _settle(waiter, grace):
        return

    # Pipes held open by an orphan outside the group
    waiter.cancel()
    if proc.returncode is None:
        await proc.wait()


async def run_process(
    program: str,
    args: list[str],
    cwd: str,
    timeout: float,
    kill_grace: float = KILL_GRACE_SEC,
    env: dict[str, str] | None = None,
) -> ExecutionResult:
    """
    Run an external program and capture its output.

    Args:
        program: Executable name or path
        args: Argument vector (without the program)
        cwd: Working directory for the process
        timeout: Seconds before the process is terminated
        kill_grace: Seconds between SIGTERM and SIGKILL
        env: Optional full environment for the child

    Returns:
        ExecutionResult. On timeout exit_code is -1, timed_out is True and
        stderr ends with a timeout marker.

    Raises:
        LaunchError: If the program could not be started
    """
    command = format_command(program, [shlex.quote(a) for a in args])
    start = time.time()
    logger.debug(f"Spawning: {command} (cwd={cwd}, timeout={timeout}s)")

    try:
        proc = await asyncio.create_subprocess_exec(
            program,
            *args,
            cwd=cwd,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=os.name == "posix",
        )
    except OSError as e:
        logger.warning(f"Failed to spawn {program}: {e}")
        raise LaunchError(
            f"Failed to spawn command: {e}",
            command=command,
            cwd=cwd,
        ) from e

    out_chunks: list[str] = []
    err_chunks: list[str] = []
    waiter = asyncio.ensure_future(
        asyncio.gather(
            _drain(proc.stdout, out_chunks),
            _drain(proc.stderr, err_chunks),
            proc.wait(),
        )
    )

    timed_out = False
    try:
        if not await _settle(waiter, timeout):
            timed_out = True
            logger.warning(f"Command timed out after {timeout}s: {command}")
            await _terminate(proc, waiter, kill_grace)
    except asyncio.CancelledError:
        _signal_group(proc, getattr(sigmod, "SIGKILL", sigmod.SIGTERM))
        waiter.cancel()
        raise

    duration_ms = (time.time() - start) * 1000
    stdout = "".join(out_chunks)
    stderr = "".join(err_chunks)

    if timed_out:
        marker = timeout_marker(timeout)
        stderr = f"{stderr}\n{marker}" if stderr else marker
        return ExecutionResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=TIMEOUT_EXIT_CODE,
            timed_out=True,
            duration_ms=duration_ms,
        )

    # Surface reader errors
    waiter.result()
    exit_code = proc.returncode if proc.returncode is not None else TIMEOUT_EXIT_CODE
    logger.debug(f"Exited {exit_code} after {duration_ms:.0f}ms: {command}")
    return ExecutionResult(
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        timed_out=False,
        duration_ms=duration_ms,
    )
