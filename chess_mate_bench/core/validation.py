"""
Legality and correctness checks for candidate lines.

A candidate line is only ever scored correct when every ply replays legally
from the puzzle's starting position and the line matches the known solution
exactly (ignoring case and whitespace).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .models import LegalityReport, Puzzle
from .rules import apply_move, new_position

logger = logging.getLogger(__name__)

UCI_MOVE_REGEX = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$", re.IGNORECASE)

ILLEGAL = LegalityReport(is_legal=False, applied_plies=0)


def normalize_uci_line(line: str) -> str:
    """Trim and collapse whitespace; case is preserved."""
    return " ".join(line.split())


def is_uci_move(token: str) -> bool:
    """True if the token has UCI shape, e.g. ``e2e4`` or ``e7e8q``."""
    return UCI_MOVE_REGEX.fullmatch(token.strip()) is not None


def score_move(expected_line: str, got_line: str) -> bool:
    """Exact line comparison, case- and whitespace-insensitive."""
    return normalize_uci_line(expected_line).lower() == normalize_uci_line(got_line).lower()


def validate_uci_line(fen: str, uci_line: str, need: int) -> LegalityReport:
    """
    Replay a UCI line from ``fen`` and report whether every ply is legal.

    Lines that are empty, of the wrong length, or contain a token that is not
    UCI-shaped are rejected without replaying anything. Otherwise replay stops
    at the first illegal move and the number of plies applied so far is kept.
    """
    line = normalize_uci_line(uci_line)
    if not line:
        return ILLEGAL

    moves = line.split(" ")
    if len(moves) != need:
        return ILLEGAL
    if not all(is_uci_move(move) for move in moves):
        return ILLEGAL

    board = new_position(fen)
    applied = 0
    for move in moves:
        if not apply_move(board, move).applied:
            logger.debug(f"Illegal ply {applied + 1} ({move}) in line '{line}'")
            return LegalityReport(is_legal=False, applied_plies=applied)
        applied += 1

    return LegalityReport(is_legal=True, applied_plies=applied)


@dataclass(frozen=True)
class Verdict:
    """Legality plus correctness of one candidate line."""

    is_legal: bool
    is_correct: bool
    applied_plies: int


def judge(puzzle: Puzzle, uci_line: str) -> Verdict:
    """Validate a candidate line against a puzzle and score it."""
    report = validate_uci_line(puzzle.fen, uci_line, puzzle.required_plies)
    is_correct = report.is_legal and score_move(puzzle.solution_uci, uci_line)
    return Verdict(report.is_legal, is_correct, report.applied_plies)


def verify_puzzle(puzzle: Puzzle) -> bool:
    """Self-consistency check: the known solution must be legal and score correct."""
    verdict = judge(puzzle, puzzle.solution_uci)
    if not verdict.is_correct:
        logger.warning(
            f"Puzzle {puzzle.id} fails its own solution check "
            f"({verdict.applied_plies}/{puzzle.required_plies} plies legal)"
        )
    return verdict.is_correct
