"""
Engine package.

create_engine() builds the UciEngine an app session keeps alive (one adapter
per session, not per puzzle). open_engine() also starts it and degrades to
None when no engine can be used.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from matetrainer.config import EngineConfig
from matetrainer.engine.adapter import DEFAULT_DEPTH, EngineStatus, UciEngine
from matetrainer.engine.errors import (
    EngineDisposed,
    EngineError,
    EngineInitFailed,
    EngineNotReady,
    IllegalReply,
)
from matetrainer.engine.transport import LineTransport, SubprocessTransport
from matetrainer.transcript import EngineTranscript

__all__ = [
    "DEFAULT_DEPTH",
    "EngineStatus",
    "UciEngine",
    "EngineError",
    "EngineNotReady",
    "EngineInitFailed",
    "EngineDisposed",
    "IllegalReply",
    "LineTransport",
    "SubprocessTransport",
    "find_engine",
    "create_engine",
    "open_engine",
]

logger = logging.getLogger(__name__)

ENGINE_PATH_ENV = "MATETRAINER_ENGINE_PATH"


def find_engine() -> Path:
    """Return the path to the UCI engine binary.

    Resolution order:
    1. ``MATETRAINER_ENGINE_PATH`` environment variable
    2. ``which stockfish`` on ``$PATH``
    """
    env_val = os.environ.get(ENGINE_PATH_ENV)
    if env_val:
        candidate = Path(env_val)
        if candidate.is_file():
            return candidate
        raise FileNotFoundError(
            f"{ENGINE_PATH_ENV}={env_val!r} does not point to an existing file"
        )

    which_result = shutil.which("stockfish")
    if which_result:
        return Path(which_result)

    raise FileNotFoundError(
        "stockfish not found in PATH. "
        f"Install it (e.g. apt install stockfish) or set {ENGINE_PATH_ENV}."
    )


def create_engine(config: EngineConfig, log_dir: Path | None = None) -> UciEngine:
    """
    Build (but do not start) the session's engine adapter.

    Raises:
        FileNotFoundError: no engine binary could be located.
    """
    path = Path(config.path) if config.path else find_engine()
    if config.path and not path.is_file():
        raise FileNotFoundError(f"engine.path={config.path!r} does not point to an existing file")

    transcript: EngineTranscript | None = None
    if config.transcript and log_dir is not None:
        transcript = EngineTranscript(log_dir, engine_name=path.stem)

    return UciEngine(
        SubprocessTransport(str(path)),
        default_depth=config.depth,
        init_timeout=config.init_timeout,
        transcript=transcript,
    )


async def open_engine(config: EngineConfig, log_dir: Path | None = None) -> UciEngine | None:
    """
    Build and initialize the engine, or return None when it is disabled or
    unavailable. Callers then judge puzzles against the recorded solutions.
    """
    if not config.enabled:
        logger.info("Engine disabled in config; using recorded solutions")
        return None
    try:
        engine = create_engine(config, log_dir)
    except FileNotFoundError as exc:
        logger.warning("No engine available (%s); using recorded solutions", exc)
        return None
    try:
        await engine.initialize()
    except EngineInitFailed as exc:
        logger.warning("%s; using recorded solutions", exc)
        engine.dispose()
        await engine.wait_closed()
        return None
    return engine
