"""
Core package for Chess Mate Benchmark.

This package contains the fundamental components for scoring language model
answers to mate puzzles: data models, the rules adapter, move extraction,
line validation, single-puzzle evaluation and batch running.
"""

from .models import (
    ALL_MATE_LEVELS,
    BenchModel,
    Config,
    EvaluationResult,
    LegalityReport,
    MateLevel,
    ParseMethod,
    Puzzle,
    PuzzleSource,
    required_plies,
)

from .rules import (
    apply_move,
    apply_san,
    new_position,
    side_to_move,
    to_standard_notation,
    uci_line_to_san,
)

from .parsing import (
    Resolution,
    extract_san_tokens,
    extract_uci_tokens,
    resolve_line,
)

from .validation import (
    Verdict,
    is_uci_move,
    judge,
    normalize_uci_line,
    score_move,
    validate_uci_line,
    verify_puzzle,
)

from .evaluator import (
    PROMPT_VARIANTS,
    PromptVariant,
    PuzzleEvaluator,
    get_prompt_variant,
)

from .runner import (
    BenchmarkRunner,
    ModelRun,
    ProgressEvent,
    async_pool,
)

__all__ = [
    # Data models
    "ALL_MATE_LEVELS",
    "BenchModel",
    "Config",
    "EvaluationResult",
    "LegalityReport",
    "MateLevel",
    "ParseMethod",
    "Puzzle",
    "PuzzleSource",
    "required_plies",

    # Rules adapter
    "apply_move",
    "apply_san",
    "new_position",
    "side_to_move",
    "to_standard_notation",
    "uci_line_to_san",

    # Extraction and resolution
    "Resolution",
    "extract_san_tokens",
    "extract_uci_tokens",
    "resolve_line",

    # Validation
    "Verdict",
    "is_uci_move",
    "judge",
    "normalize_uci_line",
    "score_move",
    "validate_uci_line",
    "verify_puzzle",

    # Evaluation
    "PROMPT_VARIANTS",
    "PromptVariant",
    "PuzzleEvaluator",
    "get_prompt_variant",

    # Batch running
    "BenchmarkRunner",
    "ModelRun",
    "ProgressEvent",
    "async_pool",
]
