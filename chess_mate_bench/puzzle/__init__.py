"""
Mate puzzle sets for the benchmark.

Puzzles are fetched from Lichess by mate theme and stored as one JSON file per
mate level. Every stored puzzle is checked against its own solution before it
is used.
"""

from .database import PuzzleDatabase
from .fetcher import LichessPuzzleFetcher, PuzzleFetchError

__all__ = [
    "LichessPuzzleFetcher",
    "PuzzleDatabase",
    "PuzzleFetchError",
]
