"""
Mate Trainer — terminal entry point.

Wires together:  config → logging → puzzle set → engine → session → CLI display
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from matetrainer.cli.display import (
    console,
    show_banner,
    show_complete,
    show_error,
    show_failed,
    show_feedback,
    show_help,
    show_puzzle,
    show_stats,
)
from matetrainer.cli.prompt import parse_command, read_command
from matetrainer.config import load_config
from matetrainer.engine import EngineError, open_engine
from matetrainer.log_setup import configure_logging
from matetrainer.progress import ProgressStore
from matetrainer.puzzle_set import PuzzleSetError, load_puzzles
from matetrainer.session import TrainerSession


async def _main() -> None:
    config_path = Path("config.yaml")
    try:
        config = load_config(config_path)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    log_file = configure_logging(config.logging, console=False)

    try:
        puzzles = load_puzzles(config.puzzles_path)
    except (FileNotFoundError, PuzzleSetError) as exc:
        console.print(f"[red]Puzzle file error:[/] {exc}")
        sys.exit(1)

    engine = await open_engine(config.engine, config.log_dir_path)
    session = TrainerSession(
        puzzles,
        engine=engine,
        progress=ProgressStore(config.progress_path),
        on_feedback=show_feedback,
        on_puzzle_failed=show_failed,
        on_puzzle_complete=show_complete,
        opponent_delay=config.opponent_delay,
        engine_depth=config.engine.depth,
    )

    show_banner(len(puzzles), engine is not None)
    console.print(f"[dim]Log: {log_file}[/]")

    try:
        session.start()
        await _command_loop(session)
    finally:
        session.close()
        if engine is not None:
            engine.dispose()
            await engine.wait_closed()


async def _command_loop(session: TrainerSession) -> None:
    while True:
        show_puzzle(session)
        try:
            raw = await read_command()
        except EOFError:
            return

        command = parse_command(raw)
        if command is None:
            show_error(f"Unknown command {raw.strip()!r}. Type 'help'.")
            continue

        match command.name:
            case "move":
                assert command.move is not None
                move = command.move
                before = session.machine.position
                try:
                    await session.make_move(move.from_square, move.to_square, move.promotion)
                except EngineError as exc:
                    show_error(f"{move} could not be judged: {exc}")
                    continue
                if session.machine.position == before:
                    show_error(f"{move} is not playable here.")
            case "hint":
                try:
                    await session.request_hint()
                except EngineError as exc:
                    show_error(f"Hint move could not be judged: {exc}")
                    continue
                if session.hint_move is None:
                    show_error("No hint available.")
            case "reset":
                session.reset()
            case "next":
                if session.is_last_puzzle:
                    show_error("This is the last puzzle.")
                session.next_puzzle()
            case "prev":
                if session.is_first_puzzle:
                    show_error("This is the first puzzle.")
                session.previous_puzzle()
            case "goto":
                assert command.puzzle_id is not None
                try:
                    session.go_to(command.puzzle_id)
                except KeyError as exc:
                    show_error(str(exc))
            case "stats":
                show_stats(session.stats())
            case "help":
                show_help()
            case "quit":
                return


def main() -> None:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        console.print("\n[dim]Bye.[/]")


if __name__ == "__main__":
    main()
