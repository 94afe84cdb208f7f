"""
FastAPI application — the web trainer backend.

Exposes:
  GET  /api/config                 Trainer settings relevant to the UI
  GET  /api/puzzles/{id}           Puzzle metadata (no solution)
  GET  /api/puzzles/{id}/board.svg Start position as SVG
  GET  /api/stats                  Derived progress stats
  WS   /ws/puzzle                  Play puzzles over a WebSocket

Each WebSocket connection gets its own TrainerSession and its own engine
process. Client messages:
  {"type": "load", "puzzle_id": 12}
  {"type": "move", "from": "e2", "to": "e4", "promotion": "q"?}
  {"type": "hint"} | {"type": "reset"} | {"type": "next"} | {"type": "previous"}
  {"type": "stop"}
Server messages: snapshot, feedback, failed, complete, error.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from datetime import date, datetime
from typing import Any, Awaitable

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import Response

from matetrainer.config import load_config
from matetrainer.engine import UciEngine, open_engine
from matetrainer.log_setup import configure_logging
from matetrainer.models import PuzzleRecord
from matetrainer.progress import ProgressStore
from matetrainer.puzzle_set import get_puzzle_by_id, load_puzzles
from matetrainer.renderer import render_svg
from matetrainer.session import TrainerSession

config = load_config()
configure_logging(config.logging, console=True)
logger = logging.getLogger("matetrainer")

puzzles = load_puzzles(config.puzzles_path)

app = FastAPI(title="Mate Trainer")


def _to_json(data: dict) -> str:
    """json.dumps with datetime → ISO-string support."""
    def _default(obj: object) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def _puzzle_json(puzzle: PuzzleRecord) -> dict[str, Any]:
    return {
        "id": puzzle.id,
        "side_to_move": puzzle.side_to_move,
        "mate_depth": puzzle.mate_depth,
        "fen": puzzle.start_position,
    }


def _snapshot_message(session: TrainerSession) -> dict[str, Any]:
    snap = session.snapshot()
    hint = session.hint_move
    step = session.hint_step
    return {
        "type": "snapshot",
        "puzzle": _puzzle_json(snap.puzzle) if snap.puzzle else None,
        "phase": snap.phase,
        "fen": snap.position,
        "orientation": snap.orientation,
        "turn": snap.turn,
        "destinations": snap.destinations,
        "last_move": list(snap.last_move) if snap.last_move else None,
        "is_failed": snap.is_failed,
        "is_interactive": snap.is_interactive,
        "is_check": snap.is_check,
        "history": [record.to_dict() for record in snap.history],
        "pending": snap.pending.to_dict() if snap.pending else None,
        "hint": {
            "step": step,
            "from": hint.from_square if hint and step >= 1 else None,
            "to": hint.to_square if hint and step >= 2 else None,
            "loading": session.is_hint_loading,
        },
        "elapsed_ms": session.timer.elapsed_ms,
        "timer_running": session.timer.is_running,
        "engine": session.uses_engine,
        "is_first": session.is_first_puzzle,
        "is_last": session.is_last_puzzle,
        "is_at_initial_state": session.is_at_initial_state,
    }


# --------------------------------------------------------------------------- #
# REST                                                                         #
# --------------------------------------------------------------------------- #

@app.get("/api/config")
def get_config():
    return {
        "engine_enabled": config.engine.enabled,
        "engine_depth": config.engine.depth,
        "opponent_delay_ms": config.trainer.opponent_delay_ms,
        "puzzle_count": len(puzzles),
        "first_puzzle_id": puzzles[0].id,
        "last_puzzle_id": puzzles[-1].id,
    }


@app.get("/api/puzzles/{puzzle_id}")
def get_puzzle(puzzle_id: int):
    puzzle = get_puzzle_by_id(puzzles, puzzle_id)
    if puzzle is None:
        raise HTTPException(status_code=404, detail=f"Unknown puzzle id: {puzzle_id}")
    return _puzzle_json(puzzle)


@app.get("/api/puzzles/{puzzle_id}/board.svg")
def get_puzzle_svg(puzzle_id: int) -> Response:
    puzzle = get_puzzle_by_id(puzzles, puzzle_id)
    if puzzle is None:
        raise HTTPException(status_code=404, detail=f"Unknown puzzle id: {puzzle_id}")
    return Response(
        render_svg(puzzle.start_position, puzzle.orientation),
        media_type="image/svg+xml",
    )


@app.get("/api/stats")
def get_stats():
    return dataclasses.asdict(ProgressStore(config.progress_path).stats())


# --------------------------------------------------------------------------- #
# WebSocket trainer                                                            #
# --------------------------------------------------------------------------- #

@app.websocket("/ws/puzzle")
async def puzzle_ws(ws: WebSocket) -> None:
    await ws.accept()

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    actions: set[asyncio.Task] = set()
    engine: UciEngine | None = None
    session: TrainerSession | None = None

    def _push_snapshot() -> None:
        if session is not None:
            outbox.put_nowait(_snapshot_message(session))

    async def _run_action(coro: Awaitable[None]) -> None:
        try:
            await coro
        except Exception as exc:
            logger.exception("Puzzle action failed")
            outbox.put_nowait({"type": "error", "message": str(exc)})

    def _spawn(coro: Awaitable[None]) -> None:
        task = asyncio.create_task(_run_action(coro))
        actions.add(task)
        task.add_done_callback(actions.discard)

    try:
        engine = await open_engine(config.engine, config.log_dir_path)
        session = TrainerSession(
            puzzles,
            engine=engine,
            progress=ProgressStore(config.progress_path),
            on_change=_push_snapshot,
            on_feedback=lambda e: outbox.put_nowait({"type": "feedback", **dataclasses.asdict(e)}),
            on_puzzle_failed=lambda e: outbox.put_nowait({"type": "failed", **dataclasses.asdict(e)}),
            on_puzzle_complete=lambda e: outbox.put_nowait({"type": "complete", **dataclasses.asdict(e)}),
            opponent_delay=config.opponent_delay,
            engine_depth=config.engine.depth,
        )
        session.start()

        async def _send_loop() -> None:
            while True:
                message = await outbox.get()
                await ws.send_text(_to_json(message))

        async def _receive_loop() -> None:
            assert session is not None
            while True:
                msg = await ws.receive_json()
                kind = msg.get("type")
                try:
                    match kind:
                        case "load":
                            session.load(int(msg["puzzle_id"]))
                        case "move":
                            _spawn(session.make_move(msg["from"], msg["to"], msg.get("promotion")))
                        case "hint":
                            _spawn(session.request_hint())
                        case "reset":
                            session.reset()
                        case "next":
                            session.next_puzzle()
                        case "previous":
                            session.previous_puzzle()
                        case "stop":
                            return
                        case _:
                            outbox.put_nowait({"type": "error", "message": f"Unknown message type: {kind!r}"})
                except (KeyError, ValueError, TypeError) as exc:
                    outbox.put_nowait({"type": "error", "message": f"Bad {kind!r} message: {exc}"})

        send_task = asyncio.create_task(_send_loop())
        recv_task = asyncio.create_task(_receive_loop())

        # The receive loop ends on "stop" or disconnect; the send loop only on a
        # broken socket. Whichever finishes first ends the connection.
        done, pending = await asyncio.wait(
            {send_task, recv_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, WebSocketDisconnect):
                pass

        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc

    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.exception("WebSocket session failed")
        try:
            await ws.send_text(_to_json({"type": "error", "message": str(exc)}))
        except (WebSocketDisconnect, RuntimeError):
            pass
    finally:
        for task in list(actions):
            task.cancel()
        if session is not None:
            session.close()
        if engine is not None:
            engine.dispose()
            await engine.wait_closed()

