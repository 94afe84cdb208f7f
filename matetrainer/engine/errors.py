"""Engine adapter error taxonomy. Every failure is fatal to the call, not the app."""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine adapter failures."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class EngineNotReady(EngineError):
    """analyze() was called before initialize() completed."""


class EngineInitFailed(EngineError):
    """The engine process could not start or never acknowledged the handshake."""


class EngineDisposed(EngineError):
    """The adapter has been disposed; no further analysis is possible."""


class IllegalReply(EngineError):
    """The opponent reply a strategy produced is not legal in the position."""
