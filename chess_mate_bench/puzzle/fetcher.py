"""
Lichess puzzle source.

Mate puzzles are pulled one at a time from the Lichess ``/api/puzzle/next``
endpoint, filtered by mate theme. Each response is turned into a
:class:`~chess_mate_bench.core.models.Puzzle` whose scored line is the first
``required_plies`` moves of the Lichess solution.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import chess
import chess.pgn
import httpx

from ..core.models import MateLevel, Puzzle, PuzzleSource
from ..core.validation import is_uci_move, normalize_uci_line, verify_puzzle

logger = logging.getLogger(__name__)

LICHESS_PUZZLE_URL = "https://lichess.org/api/puzzle/next"
LICHESS_TRAINING_URL = "https://lichess.org/training/{id}"
USER_AGENT = "chess-mate-bench (owner-run benchmark runner)"
ATTEMPTS_PER_PUZZLE = 10


class PuzzleFetchError(Exception):
    """Raised when the puzzle source returns something unusable."""


def uci_list_to_line(moves: Sequence[str], take: int) -> Optional[str]:
    """Join the first ``take`` moves into a UCI line, or None if any is not UCI."""
    cleaned = [move.strip() for move in moves if move and move.strip()]
    if len(cleaned) < take:
        return None
    first = cleaned[:take]
    if not all(is_uci_move(move) for move in first):
        return None
    return normalize_uci_line(" ".join(first))


def replay_pgn(pgn: str, plies: int) -> chess.Board:
    """Board after the first ``plies`` moves of a PGN game."""
    game = chess.pgn.read_game(io.StringIO(pgn))
    if game is None or game.errors:
        raise PuzzleFetchError("Failed to parse PGN from Lichess response")

    moves = list(game.mainline_moves())
    if not moves:
        raise PuzzleFetchError("PGN from Lichess response has no moves")

    board = game.board()
    for move in moves[:max(0, min(plies, len(moves)))]:
        board.push(move)
    return board


class LichessPuzzleFetcher:
    """Fetches mate puzzles from Lichess."""

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        """
        Initialize the fetcher.

        Args:
            client: Optional preconfigured HTTP client (owned by the caller)
            timeout: Request timeout in seconds for the internally created client
        """
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> LichessPuzzleFetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch_next(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Request the next puzzle matching ``params``.

        Raises:
            PuzzleFetchError: On a non-success status or transport failure
        """
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        query = {key: value for key, value in params.items() if value is not None}
        try:
            response = self.client.get(LICHESS_PUZZLE_URL, params=query, headers=headers)
        except httpx.HTTPError as e:
            raise PuzzleFetchError(f"Lichess puzzle fetch failed: {e}")

        if response.status_code != 200:
            raise PuzzleFetchError(
                f"Lichess puzzle fetch failed: {response.status_code} {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise PuzzleFetchError(f"Lichess returned invalid JSON: {e}")

    def fetch_one(self, level: MateLevel, difficulty: str = "normal") -> Puzzle:
        """
        Fetch and validate a single puzzle for a level.

        The mate theme is sent as ``theme`` first, then as ``angle`` if the
        first request fails.
        """
        theme = level.lichess_theme
        try:
            payload = self.fetch_next({"theme": theme, "difficulty": difficulty})
        except PuzzleFetchError as e:
            logger.debug(f"theme={theme} failed ({e}), retrying with angle")
            payload = self.fetch_next({"angle": theme, "difficulty": difficulty})

        return self.parse_payload(level, payload)

    def parse_payload(self, level: MateLevel, payload: Mapping[str, Any]) -> Puzzle:
        """Turn a ``/api/puzzle/next`` payload into a verified puzzle."""
        data = payload.get("puzzle") or {}
        game = payload.get("game") or {}

        pid = data.get("id")
        if not pid:
            raise PuzzleFetchError("Lichess response missing puzzle.id")

        solution = [str(move) for move in data.get("solution") or []]
        solution_uci = uci_list_to_line(solution, level.required_plies)
        if solution_uci is None:
            raise PuzzleFetchError(
                f"Puzzle {pid} did not include a usable UCI solution line for {level.value}"
            )
        full_solution_uci = (uci_list_to_line(solution, len(solution))
                             or normalize_uci_line(" ".join(solution)))

        source = PuzzleSource(
            provider="lichess",
            puzzle_id=pid,
            url=LICHESS_TRAINING_URL.format(id=pid),
            themes=list(data.get("themes") or []),
            rating=data.get("rating"),
            game_id=game.get("id"),
        )

        for fen, last_move in self._candidate_starts(pid, data, game):
            try:
                puzzle = Puzzle(
                    id=f"{level.value}-{pid}",
                    level=level,
                    fen=fen,
                    solution_uci=solution_uci,
                    full_solution_uci=full_solution_uci,
                    last_move_uci=last_move,
                    source=source,
                )
            except ValueError as e:
                raise PuzzleFetchError(f"Puzzle {pid} is invalid: {e}")
            if verify_puzzle(puzzle):
                return puzzle

        raise PuzzleFetchError(f"Puzzle {pid} solution does not replay from its start position")

    def _candidate_starts(self, pid: str, data: Mapping[str, Any], game: Mapping[str, Any]):
        """Yield (fen, last move) pairs to try as the puzzle's starting position."""
        fen = data.get("fen")
        if fen:
            yield fen, None
            return

        pgn = game.get("pgn")
        initial_ply = data.get("initialPly")
        if not pgn or not isinstance(initial_ply, int):
            raise PuzzleFetchError(f"Puzzle {pid} missing fen and missing pgn/initialPly to derive fen")

        # initialPly indexes the opponent's last move; older payloads count it as a length
        for plies in (initial_ply + 1, initial_ply):
            board = replay_pgn(pgn, plies)
            last_move = board.peek().uci() if board.move_stack else None
            yield board.fen(), last_move

    def collect(self, level: MateLevel, count: int, difficulty: str = "normal") -> List[Puzzle]:
        """
        Collect ``count`` distinct puzzles for a level.

        Up to ten attempts per requested puzzle are made; failed attempts are
        logged and skipped.

        Raises:
            PuzzleFetchError: If fewer than ``count`` unique puzzles were collected
        """
        puzzles: List[Puzzle] = []
        seen = set()
        max_attempts = count * ATTEMPTS_PER_PUZZLE

        for _ in range(max_attempts):
            if len(puzzles) >= count:
                break
            try:
                puzzle = self.fetch_one(level, difficulty)
            except PuzzleFetchError as e:
                logger.warning(str(e))
                continue
            if puzzle.id in seen:
                logger.debug(f"Duplicate puzzle {puzzle.id}, skipping")
                continue
            seen.add(puzzle.id)
            puzzles.append(puzzle)
            logger.info(f"[{level.value}] {len(puzzles)}/{count}: {puzzle.id}")

        if len(puzzles) < count:
            raise PuzzleFetchError(
                f"Only collected {len(puzzles)}/{count} unique puzzles for {level.value}"
            )
        return puzzles
