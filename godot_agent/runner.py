"""Run the Godot executable as a subprocess and capture its output."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from godot_agent.core.config import DEBUG
from godot_agent.errors import SpawnFailure

logger = logging.getLogger("godot-agent-tools")


@dataclass
class CommandResult:
    """Captured output of one Godot invocation.

    A non-zero ``returncode`` is not a failure on its own: Godot prints
    diagnostics and exits non-zero even when an operation partly succeeds,
    so callers decide from the output.
    """

    stdout: str
    stderr: str
    returncode: int = 0

    @property
    def exited_cleanly(self) -> bool:
        return self.returncode == 0


async def run_godot_command(
    godot_path: str, args: Sequence[str], cwd: str | None = None
) -> CommandResult:
    """Run Godot with ``args`` and wait for it to exit.

    Raises:
        SpawnFailure: The process could not be started (missing executable,
            permission denied, bad working directory).
    """
    cmd = [godot_path, *args]
    if DEBUG:
        logger.debug("Running: %s (cwd=%s)", " ".join(cmd), cwd)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise SpawnFailure(godot_path, e) from e

    stdout, stderr = await proc.communicate()
    result = CommandResult(
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        returncode=proc.returncode,
    )

    if not result.exited_cleanly:
        logger.debug("%s exited with code %s", godot_path, result.returncode)

    return result
