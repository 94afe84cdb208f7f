"""
Rich-based terminal display for the trainer.

This is the ONLY place where terminal output happens. The session and the
state machine hand over snapshots and events; this module turns them into
panels and one-line messages.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from matetrainer.events import FeedbackEvent, PuzzleCompleteEvent, PuzzleFailedEvent
from matetrainer.models import MoveRecord
from matetrainer.progress import DerivedStats
from matetrainer.renderer import render_ascii
from matetrainer.session import TrainerSession
from matetrainer.timer import format_time

console = Console(legacy_windows=False)


def show_banner(puzzle_count: int, engine_active: bool) -> None:
    judge = "[green]engine analysis[/]" if engine_active else "[yellow]recorded solutions[/]"
    console.print()
    console.print(
        Panel(
            f"[bold white]{puzzle_count}[/] puzzles loaded  ·  judged by {judge}\n"
            "[dim]Type 'help' for commands.[/]",
            title="[bold green] Mate Trainer [/]",
            border_style="green",
            expand=False,
        )
    )


def show_puzzle(session: TrainerSession) -> None:
    snapshot = session.snapshot()
    puzzle = snapshot.puzzle
    if puzzle is None:
        return

    side = "White" if puzzle.side_to_move == "white" else "Black"
    status = _status_text(snapshot.phase, snapshot.is_failed)
    console.print()
    console.print(
        f"[bold]Puzzle #{puzzle.id}[/]  [dim]·[/]  {side} to mate in {puzzle.mate_depth}"
        f"  [dim]·[/]  {status}  [dim]·[/]  [dim]{format_time(session.timer.elapsed_ms)}[/]"
    )
    console.print(
        Panel(
            f"[green]{render_ascii(snapshot.position, snapshot.orientation)}[/]",
            subtitle=f"[dim]{snapshot.position}[/]",
            border_style="red" if snapshot.is_failed else "dim",
            padding=(0, 1),
            expand=False,
        )
    )

    moves = _history_text(snapshot.history, snapshot.pending)
    if moves:
        console.print(f"[dim]Moves:[/] {moves}")
    if snapshot.is_check and snapshot.phase != "complete":
        console.print("  [bold red]CHECK![/]")

    hint = session.hint_move
    if hint is not None and session.hint_step == 1:
        console.print(f"  [cyan]Hint:[/] move the piece on [bold]{hint.from_square}[/]")
    elif hint is not None and session.hint_step == 2:
        console.print(
            f"  [cyan]Hint:[/] [bold]{hint.from_square}[/] → [bold]{hint.to_square}[/]"
            "  [dim](hint again to play it)[/]"
        )


def show_feedback(event: FeedbackEvent) -> None:
    if event.kind == "correct":
        console.print("  [green]✓[/] [bold]Correct![/]")
    else:
        console.print("  [red]✗[/] [bold]Incorrect.[/] [dim]Keep playing it out, or 'reset'.[/]")


def show_failed(event: PuzzleFailedEvent) -> None:
    console.print(f"  [dim]Puzzle #{event.puzzle_id} marked as failed.[/]")


def show_complete(event: PuzzleCompleteEvent) -> None:
    style = "green" if event.success else "red"
    outcome = "Solved" if event.success else "Mate delivered, but not cleanly"
    console.print()
    console.print(
        Panel(
            f"[bold {style}]{outcome}[/]\n[dim]Time: {format_time(event.time_ms)}[/]",
            title=f"[bold]Puzzle #{event.puzzle_id}[/]",
            border_style=style,
            expand=False,
        )
    )


def show_stats(stats: DerivedStats) -> None:
    table = Table(title="Progress", show_header=False, border_style="dim")
    table.add_column("Stat", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Attempted", str(stats.total_attempted))
    table.add_row("Solved", str(stats.total_solved))
    table.add_row("Success rate", f"{stats.success_rate:.0%}")
    avg = stats.average_solve_time_ms
    table.add_row("Average solve time", format_time(int(avg)) if avg is not None else "–")
    table.add_row("Hints used", str(stats.total_hints_used))
    console.print()
    console.print(table)


def show_help() -> None:
    table = Table(show_header=False, border_style="dim", box=None)
    table.add_column("Command", style="bold")
    table.add_column("Action", style="dim")
    table.add_row("e2e4 / e7e8q", "play a move (UCI notation)")
    table.add_row("hint", "reveal the origin square, then the destination, then play it")
    table.add_row("reset", "restart the current puzzle")
    table.add_row("next / prev", "move through the puzzle set")
    table.add_row("goto N", "jump to puzzle N")
    table.add_row("stats", "show progress")
    table.add_row("quit", "exit")
    console.print(table)


def show_error(message: str) -> None:
    console.print(f"  [red]✗[/] {message}")


def _status_text(phase: str, is_failed: bool) -> str:
    if phase == "complete":
        return "[red]complete (failed)[/]" if is_failed else "[green]complete[/]"
    if is_failed:
        return "[red]failed · free play[/]"
    return "[white]your move[/]"


def _history_text(history: tuple[MoveRecord, ...], pending: MoveRecord | None) -> str:
    parts = []
    for record in (*history, *((pending,) if pending else ())):
        mark = {True: "", False: "?", None: ""}[record.user_move.was_correct]
        text = f"{record.ordinal}. {record.user_move.notation}{mark}"
        if record.opponent_move is not None:
            text += f" {record.opponent_move.notation}"
        parts.append(text)
    return "  ".join(parts)
