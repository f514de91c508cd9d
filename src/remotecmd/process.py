"""
Subprocess execution for commands that drive external programs.

Uses asyncio.subprocess so a request waiting on a slow script does not block
the event loop serving other requests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from remotecmd.errors import ResourceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Immutable result of an external process run."""

    command: str
    stdout: str
    stderr: str
    exit_code: int

    @property
    def success(self) -> bool:
        """Return True if the process exited with code 0."""
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Captured stderr followed by stdout."""
        return self.stderr + self.stdout

    def raise_for_status(self) -> None:
        """
        Raise ResourceError if the process exited nonzero.

        The error message and its ``output`` carry the captured stderr and stdout.
        """
        if not self.success:
            detail = self.output.strip()
            message = f"{self.command!r} exited with status {self.exit_code}"
            if detail:
                message += f": {detail}"
            raise ResourceError(message, output=self.output)


async def run_process(
    command: str,
    *,
    cwd: Path | str | None = None,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """
    Run a shell command line and wait for it to exit.

    There is no timeout: the call returns only when the process exits.

    Args:
        command: The command line, as configured for the host.
        cwd: Working directory for the process.
        env: Environment variables for the process.

    Returns:
        ProcessResult with stdout, stderr, and exit_code.
    """
    logger.debug(f"Running {command!r}")
    proc = await asyncio.create_subprocess_shell(
        command,
        cwd=cwd,
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout_bytes, stderr_bytes = await proc.communicate()

    result = ProcessResult(
        command=command,
        stdout=stdout_bytes.decode("utf-8", errors="replace"),
        stderr=stderr_bytes.decode("utf-8", errors="replace"),
        exit_code=proc.returncode or 0,
    )
    if not result.success:
        logger.warning(f"{command!r} exited with status {result.exit_code}")
    return result


async def check_call(
    command: str,
    *,
    cwd: Path | str | None = None,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """Run a command and raise ResourceError if it exits nonzero."""
    result = await run_process(command, cwd=cwd, env=env)
    result.raise_for_status()
    return result
