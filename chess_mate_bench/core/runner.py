"""
Batch runner for puzzle evaluations.

Evaluations are I/O bound and rate limited by the completion service, so each
model's puzzles run through a small bounded pool of workers. Results are only
collected into the snapshot once every unit of the batch has finished.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ..llm.client import BaseLLMProvider, LLMProviderError, create_provider
from .evaluator import PuzzleEvaluator
from .models import BenchModel, Config, EvaluationResult, Puzzle
from .results import Snapshot, build_snapshot, merge_results, models_needing_run

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def async_pool(concurrency: int, items: Sequence[T],
                     fn: Callable[[T, int], Awaitable[R]]) -> List[R]:
    """
    Apply ``fn`` to every item with at most ``concurrency`` calls in flight.

    Workers pull from a shared queue, so completion order is arbitrary;
    results are returned in input order.
    """
    results: List[Optional[R]] = [None] * len(items)
    queue: asyncio.Queue = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))

    async def worker() -> None:
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            results[index] = await fn(item, index)

    worker_count = max(1, min(concurrency, len(items)))
    workers = [asyncio.create_task(worker()) for _ in range(worker_count)]
    try:
        await asyncio.gather(*workers)
    finally:
        for task in workers:
            task.cancel()

    return results  # type: ignore[return-value]


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after each evaluation unit finishes."""

    model_id: str
    puzzle_id: str
    completed: int
    total: int
    result: Optional[EvaluationResult] = None
    error: Optional[str] = None


@dataclass
class ModelRun:
    """Outcome of running one model over a batch of puzzles."""

    model: BenchModel
    results: Dict[str, EvaluationResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)   # puzzle id -> transport error

    @property
    def correct(self) -> int:
        return sum(1 for result in self.results.values() if result.is_correct)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


ProviderFactory = Callable[[Config, BenchModel], BaseLLMProvider]
ProgressCallback = Callable[[ProgressEvent], None]


class BenchmarkRunner:
    """
    Runs models over puzzles and assembles the results snapshot.

    Each (model, puzzle) unit runs independently. A transport failure in one
    unit is recorded against the model and leaves that puzzle without a
    result; it does not affect the other units.
    """

    def __init__(self, config: Config, provider_factory: ProviderFactory = create_provider,
                 progress_callback: Optional[ProgressCallback] = None):
        """
        Initialize the runner.

        Args:
            config: Global configuration
            provider_factory: Builds the completion provider for a model
            progress_callback: Optional callback invoked after every unit
        """
        self.config = config
        self.provider_factory = provider_factory
        self.progress_callback = progress_callback

    async def run_model(self, model: BenchModel, puzzles: Sequence[Puzzle]) -> ModelRun:
        """
        Evaluate every puzzle for one model.

        Raises:
            LLMProviderError: If the provider cannot be created at all
        """
        provider = self.provider_factory(self.config, model)
        evaluator = PuzzleEvaluator(provider, self.config)
        total = len(puzzles)
        completed = 0

        async def evaluate(puzzle: Puzzle, index: int) -> Tuple[Optional[EvaluationResult], Optional[str]]:
            nonlocal completed
            result: Optional[EvaluationResult] = None
            error: Optional[str] = None
            try:
                result = await evaluator.evaluate(puzzle)
            except LLMProviderError as e:
                logger.warning(f"[{model.id}] {puzzle.id}: {e}")
                error = str(e)

            completed += 1
            self._notify(ProgressEvent(model.id, puzzle.id, completed, total, result, error))
            return result, error

        logger.info(f"Running model: {model} over {total} puzzles")
        outcomes = await async_pool(self.config.concurrency, puzzles, evaluate)

        run = ModelRun(model)
        for puzzle, (result, error) in zip(puzzles, outcomes):
            if result is not None:
                run.results[puzzle.id] = result
            else:
                run.failures[puzzle.id] = error or "unknown error"

        logger.info(
            f"{model.name}: {run.correct}/{len(run.results)} correct, "
            f"{len(run.failures)} transport failures"
        )
        return run

    async def run(self, models: Sequence[BenchModel], puzzles: Sequence[Puzzle],
                  existing: Optional[Snapshot] = None,
                  force: bool = False) -> Tuple[Snapshot, List[ModelRun]]:
        """
        Benchmark the models that lack results and build the new snapshot.

        Results for models already complete in ``existing`` are reused.
        """
        entries = merge_results(puzzles, existing)
        pending = models_needing_run(models, entries, force)

        if not pending:
            logger.info("All models already have results. No benchmarks to run.")
        else:
            logger.info(f"Testing {len(pending)} model(s): {', '.join(m.name for m in pending)}")

        runs: List[ModelRun] = []
        for model in pending:
            run = await self.run_model(model, puzzles)
            runs.append(run)
            for entry in entries:
                result = run.results.get(entry.puzzle.id)
                if result is not None:
                    entry.results[model.id] = result
                elif force:
                    entry.results.pop(model.id, None)

        failures = {run.model.id: len(run.failures) for run in runs if run.failures}
        snapshot = build_snapshot(
            models, entries, self.config.prompt_version,
            existing=existing, failures=failures, now=datetime.now(timezone.utc)
        )
        return snapshot, runs

    def _notify(self, event: ProgressEvent) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(event)
        except Exception as e:
            logger.error(f"Error in progress callback: {e}")
