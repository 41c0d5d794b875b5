"""
Results snapshot and leaderboard aggregation for Chess Mate Benchmark.

This module holds the snapshot consumed by the dashboard: every puzzle with
its per-model results, plus a leaderboard of per-level scores. Snapshots are
stored as JSON, and results from earlier runs are carried forward so that only
models with missing results need to be benchmarked again.

Features:
- Merging new puzzle sets with results from a previous snapshot
- Per-level breakdown, overall score and average latency per model
- Leaderboard ordering by score
- JSON persistence with camelCase keys
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .models import ALL_MATE_LEVELS, BenchModel, EvaluationResult, MateLevel, Puzzle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotModel:
    """Leaderboard entry for one model."""

    id: str
    name: str
    score: float                     # Mean of the tested levels' percentages
    breakdown: Dict[str, float]      # Percentage correct per level
    avg_latency_ms: Optional[int] = None
    failures: int = 0                # Puzzles without a result because of transport errors

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "breakdown": dict(self.breakdown),
        }
        if self.avg_latency_ms is not None:
            data["avgLatencyMs"] = self.avg_latency_ms
        if self.failures:
            data["failures"] = self.failures
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SnapshotModel:
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            score=float(data.get("score", 0.0)),
            breakdown={k: float(v) for k, v in (data.get("breakdown") or {}).items()},
            avg_latency_ms=data.get("avgLatencyMs"),
            failures=int(data.get("failures", 0)),
        )


@dataclass
class SnapshotPuzzle:
    """A puzzle with its results keyed by model id."""

    puzzle: Puzzle
    results: Dict[str, EvaluationResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = self.puzzle.to_dict()
        data["results"] = {model_id: result.to_dict() for model_id, result in self.results.items()}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SnapshotPuzzle:
        results = {
            model_id: EvaluationResult.from_dict(result)
            for model_id, result in (data.get("results") or {}).items()
        }
        return cls(puzzle=Puzzle.from_dict(data), results=results)


@dataclass
class Snapshot:
    """Complete benchmark snapshot."""

    run_id: str
    run_at: str
    prompt_version: str
    models: List[SnapshotModel] = field(default_factory=list)
    puzzles: List[SnapshotPuzzle] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "runAt": self.run_at,
            "promptVersion": self.prompt_version,
            "models": [model.to_dict() for model in self.models],
            "puzzles": [puzzle.to_dict() for puzzle in self.puzzles],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Snapshot:
        return cls(
            run_id=data.get("runId", ""),
            run_at=data.get("runAt", ""),
            prompt_version=data.get("promptVersion", ""),
            models=[SnapshotModel.from_dict(m) for m in data.get("models") or []],
            puzzles=[SnapshotPuzzle.from_dict(p) for p in data.get("puzzles") or []],
        )


def _percent(correct: int, total: int) -> float:
    """Percentage with one decimal, rounding halves up."""
    if total == 0:
        return 0.0
    return int(correct * 1000 / total + 0.5) / 10


def compute_breakdown(puzzles: Sequence[SnapshotPuzzle],
                      model_id: str) -> Tuple[Dict[str, float], Optional[int], List[MateLevel]]:
    """
    Aggregate one model's results.

    Returns:
        Tuple of (percentage per level, average latency in ms, levels with results)
    """
    correct = {level: 0 for level in ALL_MATE_LEVELS}
    total = {level: 0 for level in ALL_MATE_LEVELS}
    latencies: List[int] = []

    for entry in puzzles:
        result = entry.results.get(model_id)
        if result is None:
            continue
        level = entry.puzzle.level
        total[level] += 1
        if result.is_correct:
            correct[level] += 1
        if result.latency_ms is not None:
            latencies.append(result.latency_ms)

    breakdown = {level.value: _percent(correct[level], total[level]) for level in ALL_MATE_LEVELS}
    avg_latency = int(sum(latencies) / len(latencies) + 0.5) if latencies else None
    tested = [level for level in ALL_MATE_LEVELS if total[level] > 0]
    return breakdown, avg_latency, tested


def overall_score(breakdown: Mapping[str, float], tested: Iterable[MateLevel]) -> float:
    """Mean percentage over the levels that have results."""
    scores = [breakdown[level.value] for level in tested]
    if not scores:
        return 0.0
    return int(sum(scores) / len(scores) * 10 + 0.5) / 10


def merge_results(puzzles: Iterable[Puzzle], existing: Optional[Snapshot]) -> List[SnapshotPuzzle]:
    """Pair each puzzle with the results a previous snapshot holds for it."""
    previous: Dict[str, SnapshotPuzzle] = {}
    if existing is not None:
        previous = {entry.puzzle.id: entry for entry in existing.puzzles}

    merged = []
    for puzzle in puzzles:
        old = previous.get(puzzle.id)
        merged.append(SnapshotPuzzle(puzzle, dict(old.results) if old else {}))
    return merged


def models_needing_run(models: Iterable[BenchModel], puzzles: Sequence[SnapshotPuzzle],
                       force: bool = False) -> List[BenchModel]:
    """Models missing a result for at least one puzzle (or all models when forced)."""
    if force:
        return list(models)
    return [
        model for model in models
        if not all(model.id in entry.results for entry in puzzles)
    ]


def new_run_id(now: datetime) -> str:
    return "bench-" + now.isoformat().replace(":", "-").replace(".", "-")


def build_snapshot(models: Sequence[BenchModel], puzzles: List[SnapshotPuzzle],
                   prompt_version: str, existing: Optional[Snapshot] = None,
                   failures: Optional[Mapping[str, int]] = None,
                   now: Optional[datetime] = None) -> Snapshot:
    """
    Build the leaderboard for every known model and wrap it in a snapshot.

    Models from the current lineup come first; models that only exist in the
    previous snapshot keep their cached name and are re-scored from the
    carried-forward results.
    """
    now = now or datetime.now(timezone.utc)
    failures = failures or {}
    current = {model.id: model for model in models}
    cached = {model.id: model for model in existing.models} if existing else {}

    model_ids = list(current)
    model_ids.extend(model_id for model_id in cached if model_id not in current)

    leaderboard = []
    for model_id in model_ids:
        name = current[model_id].name if model_id in current else cached[model_id].name
        breakdown, avg_latency, tested = compute_breakdown(puzzles, model_id)
        leaderboard.append(SnapshotModel(
            id=model_id,
            name=name,
            score=overall_score(breakdown, tested),
            breakdown=breakdown,
            avg_latency_ms=avg_latency,
            failures=failures.get(model_id, 0),
        ))

    leaderboard.sort(key=lambda entry: entry.score, reverse=True)
    return Snapshot(
        run_id=new_run_id(now),
        run_at=now.isoformat(),
        prompt_version=prompt_version,
        models=leaderboard,
        puzzles=puzzles,
    )


def read_json_file(path: Union[str, Path]) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def write_json_file(path: Union[str, Path], data: Any) -> None:
    """Write JSON with 2-space indentation, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def load_snapshot(path: Union[str, Path]) -> Optional[Snapshot]:
    """
    Load a snapshot, or None if there is none yet.

    Raises:
        ValueError: If the file exists but cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No existing snapshot at {path}, starting fresh")
        return None

    try:
        snapshot = Snapshot.from_dict(read_json_file(path))
    except (ValueError, KeyError, TypeError) as e:
        # JSONDecodeError and invalid puzzles are both ValueErrors
        raise ValueError(f"Cannot read snapshot {path}: {e}")

    logger.info(
        f"Loaded existing snapshot with {len(snapshot.puzzles)} puzzles "
        f"and {len(snapshot.models)} models"
    )
    return snapshot


def save_snapshot(snapshot: Snapshot, path: Union[str, Path]) -> None:
    write_json_file(path, snapshot.to_dict())
    logger.info(f"Wrote snapshot {snapshot.run_id} to {path}")
