"""
Command-line interface for the Chess Mate Benchmark.

This module provides the entry points and argument parsing for running mate
puzzle benchmarks against language models (``chess-mate-bench``) and for
fetching fresh puzzle sets from Lichess (``chess-mate-bench-fetch``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence, Tuple

import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .core.budget import estimate_costs, fetch_openrouter_pricing
from .core.evaluator import PROMPT_VARIANTS
from .core.models import ALL_MATE_LEVELS, BenchModel, Config, MateLevel, Puzzle
from .core.results import Snapshot, load_snapshot, save_snapshot
from .core.runner import BenchmarkRunner, ModelRun
from .llm.models import load_models
from .puzzle.database import PuzzleDatabase
from .puzzle.fetcher import LichessPuzzleFetcher, PuzzleFetchError
from .ui.dashboard import Dashboard

logger = logging.getLogger(__name__)

console = Console()

# Exit status when the run finished but some evaluations hit transport errors
EXIT_TRANSPORT_FAILURES = 2


def setup_logging(level: int = logging.INFO, verbose: bool = False) -> None:
    """
    Configure root logging.

    Without ``verbose`` a NullHandler is installed so log records never tear
    the live display; with it, records go through Rich on the shared console.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if verbose:
        root_logger.addHandler(RichHandler(console=console, show_path=False, markup=False))
        root_logger.setLevel(logging.DEBUG)
    else:
        root_logger.addHandler(logging.NullHandler())
        root_logger.setLevel(level)


def parse_levels(value: str) -> List[MateLevel]:
    """Parse a comma-separated level list such as ``mate1,mate3``."""
    levels = [MateLevel.parse(part) for part in value.split(",") if part.strip()]
    if not levels:
        raise ValueError("At least one mate level is required")
    return [level for level in ALL_MATE_LEVELS if level in levels]


class BenchmarkOrchestrator:
    """
    Coordinates one benchmark run.

    Loads the puzzle sets, model lineup and previous snapshot, runs every
    model that still lacks results with the live dashboard attached, and
    writes the new snapshot.
    """

    def __init__(self, config: Config, dashboard: Optional[Dashboard] = None):
        self.config = config
        self.dashboard = dashboard or Dashboard(console)

    def load_inputs(self, only: Optional[Sequence[str]] = None) -> Tuple[List[BenchModel], List[Puzzle]]:
        """Load the model lineup and puzzles, optionally restricted to some model ids."""
        models = load_models(self.config.models_path)
        if only:
            unknown = sorted(set(only) - {model.id for model in models})
            if unknown:
                raise ValueError(f"Unknown model ids: {', '.join(unknown)}")
            models = [model for model in models if model.id in only]

        puzzles = PuzzleDatabase(self.config.puzzles_dir).load(self.config.mate_levels)
        if not puzzles:
            raise ValueError(
                f"No puzzles found in {self.config.puzzles_dir} "
                f"(run chess-mate-bench-fetch first)"
            )
        return models, puzzles

    async def run(self, models: Sequence[BenchModel], puzzles: Sequence[Puzzle],
                  force: bool = False) -> Tuple[Snapshot, List[ModelRun]]:
        """Run the benchmark and save the resulting snapshot."""
        existing = load_snapshot(self.config.output_path)
        runner = BenchmarkRunner(self.config, progress_callback=self.dashboard.update)

        logger.info(f"Benchmarking {len(models)} models on {len(puzzles)} puzzles")
        with self.dashboard:
            snapshot, runs = await runner.run(models, puzzles, existing=existing, force=force)

        save_snapshot(snapshot, self.config.output_path)
        return snapshot, runs


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser for ``chess-mate-bench``."""
    parser = argparse.ArgumentParser(
        prog="chess-mate-bench",
        description="Benchmark language models on mate-in-N chess puzzles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every model in bench/models.json on all puzzle sets
  %(prog)s

  # Only mate-in-1 and mate-in-2, with the board drawn into the prompt
  %(prog)s --levels mate1,mate2 --prompt-variant board

  # Rerun one model even if it already has results
  %(prog)s --only openai/gpt-4o-mini --force

  # Show the saved leaderboard and what it cost
  %(prog)s --leaderboard --estimate-cost
        """
    )

    parser.add_argument("--models", type=str, help="Path to the model list JSON (default: bench/models.json)")
    parser.add_argument("--only", type=str, help="Comma-separated model ids to run from the model list")
    parser.add_argument("--puzzles-dir", type=str, help="Directory holding puzzles.<level>.json (default: bench)")
    parser.add_argument("--levels", type=str, help="Comma-separated mate levels (default: mate1,mate2,mate3)")
    parser.add_argument("--output", type=str, help="Snapshot path (default: public/results/latest.json)")
    parser.add_argument("--concurrency", type=int, help="Evaluations in flight per model (default: BENCH_CONCURRENCY or 3)")
    parser.add_argument(
        "--prompt-variant",
        type=str,
        choices=sorted(PROMPT_VARIANTS),
        help="Prompt wording to use (default: plain)"
    )
    parser.add_argument("--force", action="store_true", help="Rerun models that already have results")
    parser.add_argument("--leaderboard", action="store_true", help="Show the saved leaderboard and exit")
    parser.add_argument("--details", action="store_true", help="Also show every puzzle with each model's answer")
    parser.add_argument(
        "--estimate-cost",
        action="store_true",
        help="Estimate the cost of the saved snapshot from OpenRouter pricing and exit"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log output")
    return parser


def build_config(args: argparse.Namespace, base: Optional[Config] = None) -> Config:
    """Apply command-line overrides on top of the environment configuration."""
    config = base or Config.from_env()
    overrides = {
        "models_path": args.models,
        "puzzles_dir": args.puzzles_dir,
        "output_path": args.output,
        "concurrency": args.concurrency,
        "prompt_variant": args.prompt_variant,
    }
    data = config.to_dict()
    data.update({key: value for key, value in overrides.items() if value is not None})
    if args.levels:
        data["levels"] = [level.value for level in parse_levels(args.levels)]
    return Config.from_dict(data)


def show_cost_estimate(config: Config, dashboard: Dashboard) -> int:
    snapshot = load_snapshot(config.output_path)
    if snapshot is None:
        dashboard.display_error(f"No snapshot at {config.output_path}")
        return 1

    try:
        pricing = fetch_openrouter_pricing(config.api_key)
    except httpx.HTTPError as e:
        dashboard.display_error(f"Could not fetch OpenRouter pricing: {e}")
        return 1

    models = load_models(config.models_path)
    known = {model.id for model in models}
    # Models only present in the snapshot are priced too
    models.extend(BenchModel(id=m.id, name=m.name) for m in snapshot.models if m.id not in known)
    dashboard.display_cost_estimate(estimate_costs(snapshot, models, pricing))
    return 0


async def main_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    config = build_config(args)
    dashboard = Dashboard(console)

    if args.leaderboard or args.estimate_cost:
        if args.leaderboard:
            snapshot = load_snapshot(config.output_path)
            if snapshot is None:
                dashboard.display_error(f"No snapshot at {config.output_path}")
                return 1
            dashboard.display_leaderboard(snapshot)
            if args.details:
                dashboard.display_puzzle_details(snapshot)
        if args.estimate_cost:
            return show_cost_estimate(config, dashboard)
        return 0

    only = [part.strip() for part in args.only.split(",") if part.strip()] if args.only else None
    orchestrator = BenchmarkOrchestrator(config, dashboard)
    models, puzzles = orchestrator.load_inputs(only)
    console.print(
        f"[green]{len(models)} models · {len(puzzles)} puzzles · "
        f"prompt {config.prompt_variant} · concurrency {config.concurrency}[/green]"
    )

    snapshot, runs = await orchestrator.run(models, puzzles, force=args.force)

    dashboard.display_leaderboard(snapshot)
    if args.details:
        dashboard.display_puzzle_details(snapshot, [model.id for model in models])

    failed = [run for run in runs if run.has_failures]
    if failed:
        lines = [f"{run.model.name}: {len(run.failures)} puzzles without a result" for run in failed]
        dashboard.display_error("\n".join(lines), title="Transport failures")
        return EXIT_TRANSPORT_FAILURES

    dashboard.display_success(f"Snapshot written to {config.output_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
        return 1
    except Exception as e:
        console.print(f"\n[bold red]Benchmark failed: {e}[/bold red]")
        logger.exception("Benchmark failed with exception")
        return 1


def create_fetch_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser for ``chess-mate-bench-fetch``."""
    parser = argparse.ArgumentParser(
        prog="chess-mate-bench-fetch",
        description="Fetch mate puzzle sets from Lichess",
    )
    parser.add_argument("--count", type=int, default=10, help="Puzzles per level (default: %(default)s)")
    parser.add_argument("--levels", type=str, default="mate1,mate2,mate3", help="Comma-separated mate levels")
    parser.add_argument(
        "--difficulty",
        type=str,
        default="normal",
        choices=["easiest", "easier", "normal", "harder", "hardest"],
        help="Lichess puzzle difficulty (default: %(default)s)"
    )
    parser.add_argument("--puzzles-dir", type=str, default="bench", help="Output directory (default: %(default)s)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show log output")
    return parser


def fetch_main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for fetching puzzle sets."""
    load_dotenv()
    args = create_fetch_argument_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)

    if args.count < 1:
        console.print("[red]--count must be at least 1[/red]")
        return 1

    try:
        levels = parse_levels(args.levels)
        database = PuzzleDatabase(args.puzzles_dir)
        with LichessPuzzleFetcher() as fetcher:
            for level in levels:
                with console.status(f"Fetching {args.count} {level.value} puzzles..."):
                    puzzles = fetcher.collect(level, args.count, args.difficulty)
                path = database.save_level(level, puzzles)
                console.print(f"[green]Wrote {len(puzzles)} puzzles to {path}[/green]")

        counts = database.counts()
        console.print("Puzzle sets: " + ", ".join(f"{level.value}={count}" for level, count in counts.items()))
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted by user[/bold yellow]")
        return 1
    except (ValueError, OSError, PuzzleFetchError) as e:
        console.print(f"\n[bold red]Fetch failed: {e}[/bold red]")
        logger.exception("Puzzle fetch failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
