"""
Command input for the terminal UI.

Uses run_in_executor so that the blocking input() call doesn't stall the
asyncio event loop while an opponent reply or a hint is still in flight.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Literal

from matetrainer.models import Move

CommandName = Literal["move", "hint", "reset", "next", "prev", "goto", "stats", "help", "quit"]

_UCI_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")

_ALIASES: dict[str, CommandName] = {
    "hint": "hint",
    "h": "hint",
    "reset": "reset",
    "r": "reset",
    "next": "next",
    "n": "next",
    "prev": "prev",
    "previous": "prev",
    "p": "prev",
    "stats": "stats",
    "help": "help",
    "?": "help",
    "quit": "quit",
    "exit": "quit",
    "q": "quit",
}


@dataclass(frozen=True)
class Command:
    name: CommandName
    move: Move | None = None
    puzzle_id: int | None = None


def parse_command(raw: str) -> Command | None:
    """Parse one input line; None if it is not a command we know."""
    text = raw.strip().lower()
    if not text:
        return None

    match = _UCI_RE.match(text)
    if match:
        return Command(
            "move",
            move=Move(match.group(1), match.group(2), match.group(3)),  # type: ignore[arg-type]
        )

    word, _, rest = text.partition(" ")
    if word in ("goto", "g"):
        try:
            return Command("goto", puzzle_id=int(rest))
        except ValueError:
            return None
    if rest:
        return None
    name = _ALIASES.get(word)
    return Command(name) if name else None


async def read_command(prompt: str = "> ") -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, input, prompt)
