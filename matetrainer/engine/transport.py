"""
Line-oriented transports between the engine adapter and an engine process.

LineTransport is the abstract seam: the adapter only ever sends single text
commands and receives single text lines. SubprocessTransport runs a real UCI
binary as an asyncio child process; tests substitute a scripted in-memory
transport.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Sequence

logger = logging.getLogger(__name__)

LineHandler = Callable[[str], None]
CloseHandler = Callable[[], None]

# Seconds an engine gets to exit after "quit" before it is killed.
QUIT_GRACE = 2.0


class LineTransport(ABC):
    """Abstract bidirectional text-line channel to an engine."""

    @abstractmethod
    async def start(self, on_line: LineHandler, on_close: CloseHandler | None = None) -> None:
        """
        Open the channel.

        on_line is invoked once per non-empty, stripped line the engine emits.
        on_close is invoked once if the engine side goes away on its own.

        Raises:
            OSError: the engine could not be started.
        """
        ...

    @abstractmethod
    def send(self, command: str) -> None:
        """Queue one command line for the engine. Must not block."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the channel. Idempotent; never raises."""
        ...

    async def wait_closed(self) -> None:
        """Wait until everything close() released is gone."""
        return None


class SubprocessTransport(LineTransport):
    """Runs a UCI engine binary and pumps its stdout line by line."""

    def __init__(self, path: str, args: Sequence[str] = (), quit_grace: float = QUIT_GRACE) -> None:
        self._path = path
        self._args = tuple(args)
        self._quit_grace = quit_grace
        self._process: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task[None] | None = None
        self._reaper: asyncio.Future[None] | None = None
        self._closed = False

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    async def start(self, on_line: LineHandler, on_close: CloseHandler | None = None) -> None:
        logger.info("Starting engine process %s", self._path)
        self._process = await asyncio.create_subprocess_exec(
            self._path,
            *self._args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._reader = asyncio.create_task(self._pump(self._process, on_line, on_close))

    async def _pump(
        self,
        process: asyncio.subprocess.Process,
        on_line: LineHandler,
        on_close: CloseHandler | None,
    ) -> None:
        if process.stdout is None:
            raise RuntimeError("Engine process was started without a stdout pipe")
        async for raw in process.stdout:
            line = raw.decode("utf-8", errors="replace").strip()
            if line:
                on_line(line)
        if not self._closed:
            logger.warning("Engine process %s closed its output", self._path)
            if on_close is not None:
                on_close()

    def send(self, command: str) -> None:
        if self._process is None or self._process.stdin is None or self._closed:
            return
        try:
            self._process.stdin.write(f"{command}\n".encode("utf-8"))
        except (ConnectionResetError, BrokenPipeError):
            logger.warning("Engine process %s no longer accepts input", self._path)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._reader is not None:
            self._reader.cancel()
        process = self._process
        if process is not None and process.returncode is None:
            if process.stdin is not None:
                try:
                    process.stdin.write(b"quit\n")
                    process.stdin.close()
                except (ConnectionResetError, BrokenPipeError):
                    pass  # already gone
            try:
                self._reaper = asyncio.get_running_loop().create_task(self._reap(process))
            except RuntimeError:
                _kill(process)
        logger.info("Engine process %s released", self._path)

    async def wait_closed(self) -> None:
        if self._reaper is not None:
            await self._reaper

    async def _reap(self, process: asyncio.subprocess.Process) -> None:
        """Give the engine quit_grace seconds to obey "quit", then kill it."""
        try:
            await asyncio.wait_for(process.wait(), self._quit_grace)
        except TimeoutError:
            logger.warning(
                "Engine process %s ignored quit for %.1fs; killing it", self._path, self._quit_grace
            )
            _kill(process)
            await process.wait()
        logger.debug("Engine process %s exited with %s", self._path, process.returncode)


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass
