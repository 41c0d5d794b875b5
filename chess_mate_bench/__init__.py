"""
Chess Mate Benchmark - scoring language models on mate-in-N puzzles.

Each model is shown a puzzle position and asked for the forced mating line.
Its free-form answer is reduced to a UCI line, replayed under the rules of
chess and compared with the known solution.
"""

__version__ = "0.1.0"
__author__ = "Chess Mate Bench Team"

from .core.models import BenchModel, Config, EvaluationResult, MateLevel, ParseMethod, Puzzle
from .core.evaluator import PuzzleEvaluator
from .core.runner import BenchmarkRunner
from .llm.client import LLMProviderError, create_provider

__all__ = [
    "BenchModel",
    "BenchmarkRunner",
    "Config",
    "EvaluationResult",
    "LLMProviderError",
    "MateLevel",
    "ParseMethod",
    "Puzzle",
    "PuzzleEvaluator",
    "create_provider",
    "__version__",
]
