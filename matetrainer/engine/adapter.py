"""
UciEngine — one long-lived UCI engine presented as an async request/response API.

Lifecycle:
    idle → initializing → ready ⇄ analyzing → disposed
                        ↘ error (startup failed or the process went away)

Only one line listener is ever installed. analyze() calls are serialized by a
lock; a new request first sends "stop" so the in-flight search ends quickly,
and it is only sent to the engine once the previous request has received its
own bestmove line. A request can therefore never be resolved with another
request's result.

Usage:
    engine = UciEngine(SubprocessTransport(path))
    await engine.initialize()
    result = await engine.analyze(fen, depth=15)
    engine.dispose()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Literal

from matetrainer.engine.errors import (
    EngineDisposed,
    EngineError,
    EngineInitFailed,
    EngineNotReady,
)
from matetrainer.engine.transport import LineHandler, LineTransport
from matetrainer.transcript import EngineTranscript
from matetrainer.uci import (
    AnalysisResult,
    BestMove,
    InfoLine,
    parse_best_move,
    parse_info_line,
    uci_to_move,
)

logger = logging.getLogger(__name__)

EngineStatus = Literal["idle", "initializing", "ready", "analyzing", "disposed", "error"]

DEFAULT_DEPTH = 15
DEFAULT_INIT_TIMEOUT = 10.0  # seconds for the whole uci/isready handshake


class UciEngine:
    """Async wrapper around a UCI engine reached through a LineTransport."""

    def __init__(
        self,
        transport: LineTransport,
        *,
        default_depth: int = DEFAULT_DEPTH,
        init_timeout: float = DEFAULT_INIT_TIMEOUT,
        transcript: EngineTranscript | None = None,
    ) -> None:
        self._transport = transport
        self._default_depth = default_depth
        self._init_timeout = init_timeout
        self._transcript = transcript
        self._status: EngineStatus = "idle"
        self._handler: LineHandler | None = None
        self._pending: asyncio.Future | None = None
        self._lock = asyncio.Lock()
        self._analysis_id = 0     # id of the request that owns the listener
        self._latest_request = 0  # most recent analyze() call

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status in ("ready", "analyzing")

    @property
    def is_disposed(self) -> bool:
        return self._status == "disposed"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Start the engine and complete the uci/isready handshake.

        Raises:
            EngineInitFailed: the process could not start, exited, or did not
                acknowledge within init_timeout. Status becomes "error".
        """
        if self._status != "idle":
            return
        self._status = "initializing"

        try:
            await self._transport.start(self._on_line, self._on_close)
            async with asyncio.timeout(self._init_timeout):
                await self._send_and_wait("uci", "uciok")
                await self._send_and_wait("isready", "readyok")
        except EngineDisposed:
            raise
        except (OSError, TimeoutError, EngineError) as exc:
            self._handler = None
            if self._status != "disposed":
                self._status = "error"
            logger.error("Engine failed to initialize: %s", exc or type(exc).__name__)
            raise EngineInitFailed(
                f"Engine failed to initialize: {exc or type(exc).__name__}", cause=exc
            ) from exc

        self._status = "ready"
        self._note("engine ready")
        logger.info("Engine ready")

    def dispose(self) -> None:
        """Stop any search, release the process and fail every later call. Idempotent."""
        if self._status == "disposed":
            return
        if self._status == "analyzing":
            self._send("stop")
        self._status = "disposed"
        self._handler = None
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(EngineDisposed("Engine was disposed mid-request"))
        self._pending = None
        self._transport.close()
        self._note("engine disposed")
        logger.info("Engine disposed")

    async def wait_closed(self) -> None:
        """Wait for the engine process released by dispose() to exit."""
        await self._transport.wait_closed()

    async def __aenter__(self) -> UciEngine:
        await self.initialize()
        return self

    async def __aexit__(self, *_: object) -> None:
        self.dispose()
        await self.wait_closed()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(self, position: str, depth: int | None = None) -> AnalysisResult:
        """
        Search *position* (FEN) to *depth* and return the best move and score.

        Raises:
            EngineNotReady: initialize() has not completed.
            EngineDisposed: the adapter was disposed before or during the call.
            EngineError: the engine process went away mid-search.
        """
        self._ensure_ready()
        self._latest_request += 1
        ticket = self._latest_request

        if self._status == "analyzing":
            logger.debug("Stopping previous analysis")
            self._send("stop")

        async with self._lock:
            self._ensure_ready()
            return await self._run(ticket, position, depth or self._default_depth)

    def cancel_current_analysis(self) -> None:
        """Ask the engine to finish the current search now. Never raises."""
        if self._status == "analyzing":
            self._send("stop")

    async def _run(self, ticket: int, position: str, depth: int) -> AnalysisResult:
        self._status = "analyzing"
        self._analysis_id += 1
        request_id = self._analysis_id
        kept: InfoLine | None = None
        future: asyncio.Future[BestMove] = asyncio.get_running_loop().create_future()
        self._pending = future

        def handler(line: str) -> None:
            nonlocal kept
            if request_id != self._analysis_id:
                return
            info = parse_info_line(line)
            if info is not None and info.score is not None:
                # Equal depth: the later line wins.
                if kept is None or info.depth >= kept.depth:
                    kept = info
            best = parse_best_move(line)
            if best is not None and not future.done():
                future.set_result(best)

        self._handler = handler
        logger.debug("analyze(depth=%d) fen=%s", depth, position)
        self._send(f"position fen {position}")
        self._send(f"go depth {depth}")
        if ticket != self._latest_request:
            # A newer request queued up behind us; finish this one immediately.
            self._send("stop")

        try:
            best = await future
        finally:
            if self._handler is handler:
                self._handler = None
            if self._pending is future:
                self._pending = None
            if self._status == "analyzing":
                self._status = "ready"

        result = AnalysisResult(
            best_move=uci_to_move(best.move) if best.move else None,
            score=kept.score if kept else None,
            principal_variation=tuple(uci_to_move(m) for m in kept.pv) if kept else (),
            depth=kept.depth if kept else 0,
        )
        logger.debug(
            "analyze result: best_move=%s score=%s depth=%d",
            result.best_move, result.score, result.depth,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_ready(self) -> None:
        if self._status == "disposed":
            raise EngineDisposed("Engine is disposed")
        if self._status not in ("ready", "analyzing"):
            raise EngineNotReady(f"Engine not ready (status: {self._status})")

    async def _send_and_wait(self, command: str, ack: str) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._pending = future

        def handler(line: str) -> None:
            if line == ack and not future.done():
                future.set_result(None)

        self._handler = handler
        self._send(command)
        try:
            await future
        finally:
            if self._handler is handler:
                self._handler = None
            if self._pending is future:
                self._pending = None

    def _send(self, command: str) -> None:
        logger.debug(">> %s", command)
        if self._transcript is not None:
            self._transcript.log_sent(command)
        self._transport.send(command)

    def _note(self, text: str) -> None:
        if self._transcript is not None:
            self._transcript.log_note(text)

    def _on_line(self, line: str) -> None:
        logger.debug("<< %s", line)
        if self._transcript is not None:
            self._transcript.log_received(line)
        if self._handler is not None:
            self._handler(line)

    def _on_close(self) -> None:
        if self._status == "disposed":
            return
        logger.error("Engine process exited unexpectedly (status: %s)", self._status)
        self._note("engine process exited")
        self._status = "error"
        self._handler = None
        if self._pending is not None and not self._pending.done():
            self._pending.set_exception(EngineError("Engine process exited unexpectedly"))
        self._pending = None
