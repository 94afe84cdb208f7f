"""
Engine transcript — writes the full back-and-forth with the UCI engine to a text file.

One log file is created per engine session, named by timestamp. Every command
sent is recorded with a ">>" prefix and every line received with "<<".

Log files land in ./logs/ by default (created automatically).
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

_SEP = "=" * 80


class EngineTranscript:
    def __init__(self, log_dir: Path, engine_name: str = "engine") -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._path = log_dir / f"uci_{timestamp}_{_safe(engine_name)}.log"
        self._write(
            f"{_SEP}\n"
            f"  Mate Trainer — UCI Transcript\n"
            f"  Engine: {engine_name}\n"
            f"  Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            f"{_SEP}\n"
        )

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def log_sent(self, command: str) -> None:
        self._write(f"{_clock()} >> {command}\n")

    def log_received(self, line: str) -> None:
        self._write(f"{_clock()} << {line}\n")

    def log_note(self, note: str) -> None:
        self._write(f"{_clock()} -- {note}\n")

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _write(self, text: str) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(text)

    @property
    def path(self) -> Path:
        return self._path


def _clock() -> str:
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _safe(name: str) -> str:
    """Strip characters that are problematic in filenames."""
    return "".join(c if c.isalnum() or c in " _-" else "_" for c in name).strip()
