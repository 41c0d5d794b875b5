"""
Move extraction from free-form model output.

Models rarely answer with a clean UCI line: they reason first, wrap moves in
markdown, write ``e2-e4`` or ``a7a8=Q``, or switch to SAN altogether. This
module scans raw text for move-shaped tokens and resolves them into a line of
the required length, trying UCI tokens first and SAN tokens second.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List

from .models import ParseMethod
from .rules import apply_san, new_position

logger = logging.getLogger(__name__)

# Square pair with an optional "-" or ":" separator and an optional promotion
# written either as a trailing letter or as "=X".
UCI_TOKEN_REGEX = re.compile(
    r"\b([a-h][1-8])\s*[-:]?\s*([a-h][1-8])\s*(?:=?\s*([qrbn]))?\b",
    re.IGNORECASE,
)

# Castling, piece moves, pawn pushes and captures, promotions, check/mate suffix.
SAN_TOKEN_REGEX = re.compile(
    r"\b(O-O-O|O-O"
    r"|[KQRBN]?[a-h]?[1-8]?x?[a-h][1-8](?:=[QRBN])?[+#]?"
    r"|[a-h]x[a-h][1-8](?:=[QRBN])?[+#]?)\b"
)


def _unique(tokens: Iterable[str]) -> List[str]:
    """De-duplicate while keeping first-seen order."""
    seen = set()
    out = []
    for token in tokens:
        if token in seen:
            continue
        seen.add(token)
        out.append(token)
    return out


def extract_uci_tokens(text: str) -> List[str]:
    """
    Find UCI-shaped moves anywhere in the text.

    Every match is normalized to lowercase ``<from><to>[promotion]``, so
    ``E2-E4`` becomes ``e2e4`` and ``a7a8=Q`` becomes ``a7a8q``.

    Args:
        text: Raw model output

    Returns:
        Unique tokens in order of first appearance
    """
    if not text or not text.strip():
        return []

    def normalized():
        for match in UCI_TOKEN_REGEX.finditer(text):
            origin, target, promotion = match.groups()
            yield f"{origin}{target}{promotion or ''}".lower()

    return _unique(normalized())


def extract_san_tokens(text: str) -> List[str]:
    """
    Find SAN-like tokens anywhere in the text.

    Tokens are returned as written; they are only meaningful against a
    position, so legality is left to :func:`resolve_line`.
    """
    if not text or not text.strip():
        return []
    return _unique(match.group(1) for match in SAN_TOKEN_REGEX.finditer(text))


@dataclass(frozen=True)
class Resolution:
    """A candidate line and the extraction method that produced it."""

    line: str
    method: ParseMethod

    @property
    def found(self) -> bool:
        return bool(self.line)


NO_RESOLUTION = Resolution("", ParseMethod.NONE)


def resolve_uci_line(text: str, need: int, allow_partial: bool = False) -> str:
    """Take the first ``need`` UCI tokens; empty if there are fewer."""
    tokens = extract_uci_tokens(text)
    if len(tokens) < need and not allow_partial:
        logger.debug(f"Only {len(tokens)} UCI tokens, need {need}")
        return ""
    return " ".join(tokens[:need])


def resolve_san_line(fen: str, text: str, need: int, allow_partial: bool = False) -> str:
    """
    Replay SAN tokens from the puzzle position and convert them to UCI.

    Tokens that are not legal at the point they are tried are skipped and the
    next token is tried from the same position.
    """
    tokens = extract_san_tokens(text)
    if not tokens:
        return ""

    board = new_position(fen)
    moves: List[str] = []
    for san in tokens:
        if len(moves) >= need:
            break
        application = apply_san(board, san)
        if application.applied:
            moves.append(application.uci)
        else:
            logger.debug(f"Skipping SAN token {san!r}: not legal in {board.fen()}")

    if len(moves) < need and not allow_partial:
        logger.debug(f"Only {len(moves)} legal SAN moves, need {need}")
        return ""
    return " ".join(moves)


def resolve_line(fen: str, need: int, text: str, allow_partial: bool = False) -> Resolution:
    """
    Turn raw text into a candidate UCI line of ``need`` plies.

    UCI tokens are tried first; when they cannot fill the line, SAN tokens
    from the same text are replayed against the position. The first method
    that produces a full line wins.

    Args:
        fen: Puzzle starting position
        need: Required ply count
        text: Raw model output
        allow_partial: Accept lines shorter than ``need`` (diagnostics only)

    Returns:
        Resolution with the line and method, or an empty line with method "none"
    """
    line = resolve_uci_line(text, need, allow_partial)
    if line:
        return Resolution(line, ParseMethod.UCI)

    line = resolve_san_line(fen, text, need, allow_partial)
    if line:
        return Resolution(line, ParseMethod.SAN)

    return NO_RESOLUTION
