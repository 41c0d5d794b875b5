"""
Chess Puzzle Database

Puzzle sets are stored as one JSON file per mate level
(``puzzles.mate1.json``, ``puzzles.mate2.json``, ...) in a directory. Every
puzzle is checked on load: its known solution must replay legally from its
starting position, otherwise it is skipped with a warning.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..core.models import ALL_MATE_LEVELS, MateLevel, Puzzle
from ..core.results import read_json_file, write_json_file
from ..core.validation import verify_puzzle

logger = logging.getLogger(__name__)


class PuzzleDatabase:
    """Directory of per-level puzzle sets."""

    def __init__(self, directory: Union[str, Path]):
        """Initialize the database over a directory (created on first save)."""
        self.directory = Path(directory)

    def path_for(self, level: MateLevel) -> Path:
        return self.directory / f"puzzles.{level.value}.json"

    def load_level(self, level: MateLevel) -> List[Puzzle]:
        """Load the puzzles for one level; a missing file is an empty set."""
        path = self.path_for(level)
        if not path.exists():
            logger.info(f"No puzzle set for {level.value} at {path}")
            return []

        data = read_json_file(path)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON list of puzzles")

        puzzles: List[Puzzle] = []
        seen = set()
        for item in data:
            try:
                puzzle = Puzzle.from_dict(item)
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping invalid puzzle in {path}: {e}")
                continue
            if puzzle.level is not level:
                logger.warning(f"Skipping {puzzle.id}: level {puzzle.level.value} in {path.name}")
                continue
            if puzzle.id in seen or not verify_puzzle(puzzle):
                continue
            seen.add(puzzle.id)
            puzzles.append(puzzle)

        logger.info(f"Loaded {len(puzzles)} puzzles for {level.value}")
        return puzzles

    def load(self, levels: Optional[Iterable[MateLevel]] = None) -> List[Puzzle]:
        """Load puzzles for the given levels (all levels by default), in level order."""
        puzzles: List[Puzzle] = []
        for level in levels or ALL_MATE_LEVELS:
            puzzles.extend(self.load_level(level))
        return puzzles

    def save_level(self, level: MateLevel, puzzles: Iterable[Puzzle]) -> Path:
        """Write one level's puzzle set, replacing the existing file."""
        path = self.path_for(level)
        write_json_file(path, [puzzle.to_dict() for puzzle in puzzles])
        logger.info(f"Wrote {path}")
        return path

    def counts(self) -> Dict[MateLevel, int]:
        """Number of usable puzzles per level."""
        return {level: len(self.load_level(level)) for level in ALL_MATE_LEVELS}
