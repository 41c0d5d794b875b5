"""
UI dashboard module for live benchmark progress and results.

This module provides a Rich-based terminal UI that tracks every model while
its puzzles are evaluated, and renders the final leaderboard, per-puzzle
answers and cost estimates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from rich.align import Align
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..core.budget import CostEstimate
from ..core.models import ALL_MATE_LEVELS
from ..core.results import Snapshot
from ..core.rules import uci_line_to_san
from ..core.runner import ProgressEvent

logger = logging.getLogger(__name__)


@dataclass
class ModelProgress:
    """Live counters for one model."""

    model_id: str
    completed: int = 0
    total: int = 0
    correct: int = 0
    illegal: int = 0
    unparsed: int = 0
    failures: int = 0
    last_puzzle: str = ""
    last_answer: str = ""

    @property
    def accuracy(self) -> float:
        answered = self.completed - self.failures
        if answered <= 0:
            return 0.0
        return self.correct / answered

    def record(self, event: ProgressEvent) -> None:
        self.completed = event.completed
        self.total = event.total
        self.last_puzzle = event.puzzle_id
        if event.error is not None:
            self.failures += 1
            self.last_answer = "transport error"
            return

        result = event.result
        if result is None:
            return
        if result.is_correct:
            self.correct += 1
        if result.is_legal is None:
            self.unparsed += 1
        elif not result.is_legal:
            self.illegal += 1
        self.last_answer = result.move or "(no move)"


def _progress_bar(completed: int, total: int, width: int = 20) -> str:
    if total <= 0:
        return "░" * width
    filled = int(width * completed / total)
    return "█" * filled + "░" * (width - filled)


class Dashboard:
    """
    Rich-based terminal dashboard for benchmark runs.

    Feed it :class:`ProgressEvent` objects through :meth:`update` while a
    batch runs; the live table is redrawn after every event.
    """

    def __init__(self, console: Optional[Console] = None, refresh_rate: int = 4):
        """
        Initialize the dashboard.

        Args:
            console: Rich console instance (creates new if None)
            refresh_rate: Live display refreshes per second
        """
        self.console = console or Console()
        self.refresh_rate = refresh_rate
        self.progress: Dict[str, ModelProgress] = {}
        self._live: Optional[Live] = None

    def start_live_display(self) -> Live:
        """Start the live updating display."""
        if self._live is not None:
            return self._live

        self._live = Live(
            self.render_progress(),
            console=self.console,
            refresh_per_second=self.refresh_rate,
            auto_refresh=True,
        )
        self._live.start()
        return self._live

    def stop_live_display(self) -> None:
        """Stop the live display if running."""
        if self._live is not None:
            try:
                self._live.stop()
            finally:
                self._live = None

    def update(self, event: ProgressEvent) -> None:
        """Record a finished evaluation unit and redraw."""
        progress = self.progress.get(event.model_id)
        if progress is None:
            progress = self.progress[event.model_id] = ModelProgress(event.model_id)
        progress.record(event)

        if self._live is not None:
            self._live.update(self.render_progress())

    def render_progress(self) -> Panel:
        """Render the live per-model progress table."""
        if not self.progress:
            return Panel(
                Align.center(Group(
                    Text("♟ Chess Mate Benchmark", style="bold magenta", justify="center"),
                    Text("Waiting for results...", style="dim", justify="center"),
                )),
                border_style="magenta",
                padding=(1, 4),
            )

        table = Table(expand=True)
        table.add_column("Model", style="cyan", no_wrap=True)
        table.add_column("Progress", style="white")
        table.add_column("Correct", style="green", justify="right")
        table.add_column("Accuracy", style="yellow", justify="right")
        table.add_column("Illegal", style="red", justify="right")
        table.add_column("No Move", style="dim", justify="right")
        table.add_column("Errors", style="bold red", justify="right")
        table.add_column("Last", style="magenta")

        for progress in self.progress.values():
            table.add_row(
                progress.model_id,
                f"{_progress_bar(progress.completed, progress.total)} {progress.completed}/{progress.total}",
                str(progress.correct),
                f"{progress.accuracy:.1%}",
                str(progress.illegal),
                str(progress.unparsed),
                str(progress.failures) if progress.failures else "—",
                f"{progress.last_puzzle}: {progress.last_answer}",
            )

        return Panel(table, title="♟ Chess Mate Benchmark", border_style="magenta")

    def display_leaderboard(self, snapshot: Snapshot) -> None:
        """Print the leaderboard of a snapshot."""
        table = Table(expand=True, show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Model", style="cyan", no_wrap=True)
        table.add_column("Score", style="bold green", justify="right")
        for level in ALL_MATE_LEVELS:
            table.add_column(level.value, style="yellow", justify="right")
        table.add_column("Avg Latency", style="bright_magenta", justify="right")
        table.add_column("Errors", style="red", justify="right")

        for rank, model in enumerate(snapshot.models, start=1):
            latency = f"{model.avg_latency_ms} ms" if model.avg_latency_ms is not None else "—"
            table.add_row(
                str(rank),
                model.name,
                f"{model.score:.1f}%",
                *[f"{model.breakdown.get(level.value, 0.0):.1f}%" for level in ALL_MATE_LEVELS],
                latency,
                str(model.failures) if model.failures else "—",
            )

        summary = Text(
            f"Run {snapshot.run_id} · prompt {snapshot.prompt_version} · "
            f"{len(snapshot.puzzles)} puzzles",
            style="dim",
        )
        self.console.print(Panel(
            Group(table, Text(""), summary),
            title="🏆 Leaderboard",
            title_align="center",
            border_style="green",
            padding=(1, 2),
        ))

    def display_puzzle_details(self, snapshot: Snapshot, model_ids: Optional[List[str]] = None) -> None:
        """Print each puzzle's solution and the models' answers in SAN."""
        model_ids = model_ids or [model.id for model in snapshot.models]

        table = Table(expand=True, show_header=True, header_style="bold cyan", show_lines=True)
        table.add_column("Puzzle", style="cyan", no_wrap=True)
        table.add_column("Solution", style="green")
        for model_id in model_ids:
            table.add_column(model_id, overflow="fold")

        for entry in snapshot.puzzles:
            puzzle = entry.puzzle
            cells = []
            for model_id in model_ids:
                result = entry.results.get(model_id)
                if result is None:
                    cells.append(Text("—", style="dim"))
                elif not result.move:
                    cells.append(Text("no move", style="dim"))
                else:
                    style = "green" if result.is_correct else ("yellow" if result.is_legal else "red")
                    cells.append(Text(uci_line_to_san(puzzle.fen, result.move), style=style))
            table.add_row(puzzle.id, uci_line_to_san(puzzle.fen, puzzle.solution_uci), *cells)

        self.console.print(table)

    def display_cost_estimate(self, estimate: CostEstimate) -> None:
        """Print per-model estimated costs and the total."""
        table = Table(expand=True, show_header=True, header_style="bold cyan")
        table.add_column("Model", style="cyan", no_wrap=True)
        table.add_column("Prompt Tokens", justify="right")
        table.add_column("Completion Tokens", justify="right")
        table.add_column("Cost", style="green", justify="right")
        table.add_column("Note", style="dim")

        for line in estimate.lines:
            table.add_row(
                line.model.name,
                f"{line.usage.prompt:,}",
                f"{line.usage.completion:,}",
                f"${line.cost:.4f}" if line.cost is not None else "—",
                line.note,
            )

        self.console.print(Panel(
            Group(table, Text(""), Text(f"💰 Total: ${estimate.total_cost:.4f}", style="bold")),
            title="Estimated Cost",
            border_style="green",
        ))

    def display_error(self, error: str, title: str = "Error") -> None:
        """Display an error message in a formatted panel."""
        self.console.print(Panel(Text(error, style="red"), title=f"❌ {title}", border_style="red", padding=(1, 2)))

    def display_info(self, message: str, title: str = "Info") -> None:
        """Display an info message in a formatted panel."""
        self.console.print(Panel(Text(message, style="blue"), title=f"ℹ️ {title}", border_style="blue", padding=(1, 2)))

    def display_success(self, message: str, title: str = "Success") -> None:
        """Display a success message in a formatted panel."""
        self.console.print(Panel(Text(message, style="green"), title=f"✅ {title}", border_style="green", padding=(1, 2)))

    def __enter__(self) -> Dashboard:
        self.start_live_display()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop_live_display()
