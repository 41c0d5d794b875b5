"""
Core data models for the Chess Mate Benchmark.

This module defines the fundamental data structures used throughout the application
for representing puzzles, benchmarked models, evaluation results and configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import chess


class MateLevel(Enum):
    """Puzzle difficulty classes supported by the benchmark."""

    MATE_IN_1 = "mate1"
    MATE_IN_2 = "mate2"
    MATE_IN_3 = "mate3"

    @property
    def mate_in(self) -> int:
        """Number of moves by the solving side until mate."""
        return int(self.value[-1])

    @property
    def required_plies(self) -> int:
        """Plies scored for this level: the solver's moves plus forced replies."""
        return 2 * self.mate_in - 1

    @property
    def lichess_theme(self) -> str:
        return f"mateIn{self.mate_in}"

    @classmethod
    def parse(cls, value: str) -> MateLevel:
        """Parse a level from its value ("mate2") or name ("MATE_IN_2")."""
        text = value.strip()
        for level in cls:
            if text.lower() == level.value or text.upper() == level.name:
                return level
        valid = ", ".join(level.value for level in cls)
        raise ValueError(f"Unknown mate level '{value}'. Available: {valid}")


ALL_MATE_LEVELS: Tuple[MateLevel, ...] = tuple(MateLevel)


def required_plies(level: MateLevel) -> int:
    """Required ply count for a level (1, 3, 5 for mate in 1, 2, 3)."""
    return level.required_plies


class ParseMethod(str, Enum):
    """How a candidate line was recovered from the raw model output."""

    UCI = "uci"
    SAN = "san"
    NONE = "none"


@dataclass(frozen=True)
class PuzzleSource:
    """Where a puzzle came from."""

    provider: str = "unknown"
    puzzle_id: Optional[str] = None
    url: Optional[str] = None
    themes: List[str] = field(default_factory=list)
    rating: Optional[int] = None
    game_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"provider": self.provider}
        if self.puzzle_id:
            data["puzzleId"] = self.puzzle_id
        if self.url:
            data["url"] = self.url
        if self.themes:
            data["themes"] = list(self.themes)
        if self.rating is not None:
            data["rating"] = self.rating
        if self.game_id:
            data["gameId"] = self.game_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PuzzleSource:
        return cls(
            provider=data.get("provider", "unknown"),
            puzzle_id=data.get("puzzleId"),
            url=data.get("url"),
            themes=list(data.get("themes") or []),
            rating=data.get("rating"),
            game_id=data.get("gameId"),
        )


@dataclass(frozen=True)
class Puzzle:
    """A mate puzzle: starting position plus the known solution line."""

    id: str
    level: MateLevel
    fen: str
    solution_uci: str                       # Space-separated UCI line used for scoring
    full_solution_uci: Optional[str] = None  # Full line from the source, if longer
    last_move_uci: Optional[str] = None      # Opponent's last move, context only
    source: Optional[PuzzleSource] = None

    def __post_init__(self):
        """Validate the puzzle after initialization."""
        if not self.id:
            raise ValueError("Puzzle id cannot be empty")
        try:
            chess.Board(self.fen)
        except ValueError as e:
            raise ValueError(f"Invalid FEN: {self.fen} - {e}")

        moves = self.solution_uci.split()
        if len(moves) != self.level.required_plies:
            raise ValueError(
                f"Puzzle {self.id}: solution has {len(moves)} plies, "
                f"{self.level.value} requires {self.level.required_plies}"
            )

    @property
    def required_plies(self) -> int:
        return self.level.required_plies

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "level": self.level.value,
            "fen": self.fen,
            "solutionUci": self.solution_uci,
        }
        if self.full_solution_uci:
            data["fullSolutionUci"] = self.full_solution_uci
        if self.last_move_uci:
            data["lastMoveUci"] = self.last_move_uci
        if self.source is not None:
            data["source"] = self.source.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Puzzle:
        source = data.get("source")
        return cls(
            id=data["id"],
            level=MateLevel.parse(data["level"]),
            fen=data["fen"],
            solution_uci=data["solutionUci"],
            full_solution_uci=data.get("fullSolutionUci"),
            last_move_uci=data.get("lastMoveUci"),
            source=PuzzleSource.from_dict(source) if source else None,
        )


@dataclass(frozen=True)
class BenchModel:
    """A language model under test."""

    id: str                       # Provider model id, the stable key in results
    name: str                     # Display name
    temperature: float = 0.0
    max_tokens: int = 128         # Completion token budget for the first attempt
    provider: str = "openrouter"

    def __post_init__(self):
        if not self.id:
            raise ValueError("Model id cannot be empty")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")

    def __str__(self) -> str:
        return f"{self.name} ({self.provider}:{self.id})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "temperature": self.temperature,
            "maxTokens": self.max_tokens,
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BenchModel:
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            temperature=float(data.get("temperature", 0.0)),
            max_tokens=int(data.get("maxTokens", 128)),
            provider=str(data.get("provider", "openrouter")).lower(),
        )


@dataclass(frozen=True)
class LegalityReport:
    """Outcome of replaying a candidate line from the puzzle's start."""

    is_legal: bool
    applied_plies: int


@dataclass(frozen=True)
class EvaluationResult:
    """Result of one (model, puzzle) evaluation, immutable once created."""

    move: str                       # Parsed UCI line, empty when nothing was recovered
    is_correct: bool
    is_legal: Optional[bool]        # None when no line was parsed
    parse_method: ParseMethod
    raw_output: str
    latency_ms: Optional[int] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    applied_plies: int = 0
    retried: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys consumed by the dashboard."""
        data: Dict[str, Any] = {
            "move": self.move,
            "isCorrect": self.is_correct,
            "parseMethod": self.parse_method.value,
            "rawOutput": self.raw_output,
            "appliedPlies": self.applied_plies,
            "retried": self.retried,
        }
        if self.is_legal is not None:
            data["isLegal"] = self.is_legal
        for key, value in (
            ("latencyMs", self.latency_ms),
            ("promptTokens", self.prompt_tokens),
            ("completionTokens", self.completion_tokens),
            ("totalTokens", self.total_tokens),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EvaluationResult:
        return cls(
            move=data.get("move", ""),
            is_correct=bool(data.get("isCorrect", False)),
            is_legal=data.get("isLegal"),
            parse_method=ParseMethod(data.get("parseMethod", "none")),
            raw_output=data.get("rawOutput", ""),
            latency_ms=data.get("latencyMs"),
            prompt_tokens=data.get("promptTokens"),
            completion_tokens=data.get("completionTokens"),
            total_tokens=data.get("totalTokens"),
            applied_plies=int(data.get("appliedPlies", 0)),
            retried=bool(data.get("retried", False)),
        )


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got '{raw}'")


def _env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got '{raw}'")


@dataclass
class Config:
    """Configuration settings for the chess mate benchmark."""

    # Completion service settings
    api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    base_url: str = "https://openrouter.ai/api/v1"
    http_referer: str = "http://localhost:3000"
    app_title: str = "ChessBench"
    request_timeout: float = 120.0

    # Scheduling
    concurrency: int = 3

    # Truncation retry policy
    retry_multiplier: int = 4
    retry_floor: int = 256
    retry_ceiling: int = 1024

    # Prompting
    prompt_variant: str = "plain"
    prompt_version: str = "v1.1"

    # Files
    models_path: str = "bench/models.json"
    puzzles_dir: str = "bench"
    output_path: str = "public/results/latest.json"
    levels: List[str] = field(default_factory=lambda: [level.value for level in ALL_MATE_LEVELS])

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.concurrency < 1:
            raise ValueError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.retry_ceiling < self.retry_floor:
            raise ValueError("Retry ceiling cannot be below the retry floor")

    @property
    def mate_levels(self) -> List[MateLevel]:
        return [MateLevel.parse(level) for level in self.levels]

    def retry_budget(self, configured_max: int) -> int:
        """Token budget for the one truncation retry."""
        return min(max(configured_max * self.retry_multiplier, self.retry_floor), self.retry_ceiling)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Config:
        """Resolve configuration once from the process environment."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            api_key=env.get("OPENROUTER_API_KEY") or None,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            base_url=env.get("CHESSBENCH_BASE_URL") or defaults.base_url,
            http_referer=env.get("CHESSBENCH_HTTP_REFERER") or defaults.http_referer,
            app_title=env.get("CHESSBENCH_X_TITLE") or defaults.app_title,
            concurrency=_env_int(env, "BENCH_CONCURRENCY", defaults.concurrency),
            request_timeout=_env_float(env, "BENCH_TIMEOUT", defaults.request_timeout),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Config:
        """Create config from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
