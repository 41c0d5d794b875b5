"""
UI package for Chess Mate Benchmark.

This package contains the Rich terminal UI used to follow benchmark runs and
to display leaderboards, per-puzzle answers and cost estimates.
"""

from .dashboard import Dashboard, ModelProgress

__all__ = [
    "Dashboard",
    "ModelProgress",
]
