"""
Rules adapter over python-chess.

Thin, stateless helpers for the parts of the chess rules the benchmark needs:
building positions from FEN, applying single moves without partial mutation,
and translating between UCI and SAN for display.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import chess

logger = logging.getLogger(__name__)

WHITE = "white"
BLACK = "black"


@dataclass(frozen=True)
class MoveApplication:
    """Outcome of applying one move to a position."""

    position: chess.Board
    applied: bool
    move: Optional[chess.Move] = None

    @property
    def uci(self) -> str:
        return self.move.uci() if self.move is not None else ""


def new_position(fen: str) -> chess.Board:
    """Create a fresh position from a FEN string.

    Raises:
        ValueError: If the FEN cannot be parsed
    """
    return chess.Board(fen)


def apply_move(board: chess.Board, uci: str) -> MoveApplication:
    """
    Apply a UCI move if it is legal in the current position.

    The board is only pushed when the move is legal; malformed or illegal
    moves leave it untouched and report ``applied=False``.
    """
    try:
        move = chess.Move.from_uci(uci.strip().lower())
    except ValueError:
        return MoveApplication(board, False)

    if move not in board.legal_moves:
        return MoveApplication(board, False)

    board.push(move)
    return MoveApplication(board, True, move)


def apply_san(board: chess.Board, san: str) -> MoveApplication:
    """
    Apply a SAN move using python-chess's lenient SAN parser.

    Check/mate suffixes, castling written with zeros and over-specified
    disambiguation are accepted. Illegal or ambiguous moves are not applied.
    """
    try:
        move = board.parse_san(san.strip())
    except ValueError:
        # InvalidMoveError, IllegalMoveError and AmbiguousMoveError all derive from ValueError
        return MoveApplication(board, False)

    board.push(move)
    return MoveApplication(board, True, move)


def side_to_move(board: chess.Board) -> str:
    """Return "white" or "black"."""
    return WHITE if board.turn == chess.WHITE else BLACK


def to_standard_notation(board: chess.Board, uci: str) -> str:
    """Best-effort SAN for a UCI move; returns the UCI string unchanged on failure."""
    try:
        move = chess.Move.from_uci(uci.strip().lower())
        if move not in board.legal_moves:
            return uci
        return board.san(move)
    except ValueError:
        return uci


def uci_line_to_san(fen: str, uci_line: str) -> str:
    """
    Render a space-separated UCI line in SAN from the given position.

    Falls back to the original UCI line if the FEN is invalid or any move
    in the line cannot be played.
    """
    moves = uci_line.split()
    if not moves:
        return ""

    try:
        board = new_position(fen)
    except ValueError:
        return uci_line

    san_moves = []
    for uci in moves:
        san = to_standard_notation(board, uci)
        if not apply_move(board, uci).applied:
            logger.debug(f"Cannot render {uci} in SAN from {board.fen()}")
            return uci_line
        san_moves.append(san)
    return " ".join(san_moves)


def render_board(board: chess.Board) -> str:
    """ASCII diagram with rank and file labels, White at the bottom."""
    rows = str(board).splitlines()
    labelled = [f"{8 - i} {row}" for i, row in enumerate(rows)]
    labelled.append("  a b c d e f g h")
    return "\n".join(labelled)
