"""Tracking of the single running Godot project, and detached launches."""

import asyncio
import collections
import enum
import logging
import subprocess
from typing import Optional, Sequence

from godot_agent.errors import SpawnFailure

logger = logging.getLogger("godot-agent-tools")

NOTHING_RUNNING = "No Godot project is currently running"

# Oldest output is dropped past this many chunks (4 KiB each)
MAX_OUTPUT_CHUNKS = 2048


class LaunchMode(enum.Enum):
    DETACHED = "detached"  # fire and forget, no handle kept
    TRACKED = "tracked"  # handle kept in the session, output buffered


class ProjectSession:
    """Holds zero or one running Godot process.

    Starting while a process is running stops the old one first. Output from
    stdout and stderr is appended to one buffer in arrival order, keeping the
    most recent ``max_chunks`` reads. Start and stop are serialized, so
    overlapping calls never leave a second process untracked.
    """

    def __init__(self, max_chunks: int = MAX_OUTPUT_CHUNKS):
        self._process: Optional[asyncio.subprocess.Process] = None
        self._readers: list[asyncio.Task] = []
        self._output: collections.deque[str] = collections.deque(maxlen=max_chunks)
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._process is not None

    async def start(self, executable: str, args: Sequence[str]) -> str:
        async with self._lock:
            if self._process is not None:
                logger.info("Stopping previous Godot run before starting a new one")
                await self._stop_locked()

            try:
                process = await asyncio.create_subprocess_exec(
                    executable,
                    *args,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise SpawnFailure(executable, e) from e

            self._process = process
            self._output.clear()
            self._readers = [
                asyncio.create_task(self._pump(process.stdout)),
                asyncio.create_task(self._pump(process.stderr)),
            ]
        logger.info("Started Godot (pid %s): %s", process.pid, " ".join(args))
        return f"Started: {' '.join(args)}"

    async def _pump(self, stream: asyncio.StreamReader):
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            self._output.append(chunk.decode("utf-8", errors="replace"))

    async def stop(self) -> str:
        async with self._lock:
            if self._process is None:
                return NOTHING_RUNNING
            await self._stop_locked()
        return "Stopped running Godot project"

    async def _stop_locked(self):
        process, readers = self._process, self._readers
        self._process = None
        self._readers = []

        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
        await process.wait()

        for reader in readers:
            reader.cancel()
        await asyncio.gather(*readers, return_exceptions=True)

        self._output.clear()
        logger.info("Stopped Godot (pid %s)", process.pid)

    def peek(self) -> str:
        if self._process is None:
            return NOTHING_RUNNING
        return "".join(self._output)


def launch_detached(executable: str, args: Sequence[str]) -> None:
    """Start Godot independently of this process, discarding its output."""
    try:
        subprocess.Popen(
            [executable, *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise SpawnFailure(executable, e) from e


async def launch(
    session: ProjectSession, executable: str, args: Sequence[str], mode: LaunchMode
) -> Optional[str]:
    if mode is LaunchMode.DETACHED:
        launch_detached(executable, args)
        return None
    return await session.start(executable, args)
