"""
Unit tests for legality and correctness validation.
"""

import unittest

from chess_mate_bench.core.models import MateLevel, Puzzle
from chess_mate_bench.core.validation import (
    is_uci_move,
    judge,
    normalize_uci_line,
    score_move,
    validate_uci_line,
    verify_puzzle,
)
from tests.fakes import START_FEN, mate1_puzzle, opening_puzzle


class LineHelperTests(unittest.TestCase):
    """Test line normalization and comparison."""

    def test_normalize_uci_line(self):
        self.assertEqual(normalize_uci_line("  e2e4   e7e5 \n g1f3 "), "e2e4 e7e5 g1f3")
        self.assertEqual(normalize_uci_line(""), "")

    def test_is_uci_move(self):
        self.assertTrue(is_uci_move("e2e4"))
        self.assertTrue(is_uci_move("e7e8q"))
        self.assertTrue(is_uci_move("E2E4"))
        self.assertFalse(is_uci_move("e2e9"))
        self.assertFalse(is_uci_move("Nf3"))
        self.assertFalse(is_uci_move("e7e8k"))
        self.assertFalse(is_uci_move("i2i4"))
        self.assertFalse(is_uci_move("e2e4qq"))

    def test_score_move(self):
        self.assertTrue(score_move("e2e4 e7e5", "E2E4  e7e5"))
        self.assertFalse(score_move("e2e4 e7e5", "e2e4"))


class ValidateUciLineTests(unittest.TestCase):
    """Test replaying candidate lines."""

    def test_legal_line(self):
        report = validate_uci_line(START_FEN, "e2e4 e7e5 g1f3", 3)
        self.assertTrue(report.is_legal)
        self.assertEqual(report.applied_plies, 3)

    def test_empty_line(self):
        report = validate_uci_line(START_FEN, "   ", 1)
        self.assertFalse(report.is_legal)
        self.assertEqual(report.applied_plies, 0)

    def test_wrong_length_is_rejected_before_replay(self):
        report = validate_uci_line(START_FEN, "e2e4 e7e5 g1f3", 1)
        self.assertFalse(report.is_legal)
        self.assertEqual(report.applied_plies, 0)

        report = validate_uci_line(START_FEN, "e2e4", 3)
        self.assertFalse(report.is_legal)

    def test_malformed_token_is_rejected_before_replay(self):
        report = validate_uci_line(START_FEN, "e2e4 Nf6 g1f3", 3)
        self.assertFalse(report.is_legal)
        self.assertEqual(report.applied_plies, 0)

    def test_replay_stops_at_first_illegal_ply(self):
        report = validate_uci_line(START_FEN, "e2e4 e2e4 g1f3", 3)
        self.assertFalse(report.is_legal)
        self.assertEqual(report.applied_plies, 1)


class JudgeTests(unittest.TestCase):
    """Test scoring candidate lines against puzzles."""

    def test_correct_mate(self):
        verdict = judge(mate1_puzzle(), "g5h4")
        self.assertTrue(verdict.is_legal)
        self.assertTrue(verdict.is_correct)
        self.assertEqual(verdict.applied_plies, 1)

    def test_case_insensitive_match(self):
        self.assertTrue(judge(mate1_puzzle(), "G5H4").is_correct)

    def test_legal_but_wrong(self):
        verdict = judge(mate1_puzzle(), "g5g4")
        self.assertTrue(verdict.is_legal)
        self.assertFalse(verdict.is_correct)

    def test_illegal_is_never_correct(self):
        verdict = judge(mate1_puzzle(), "g5a1")
        self.assertFalse(verdict.is_legal)
        self.assertFalse(verdict.is_correct)

    def test_alternative_line_is_not_accepted(self):
        verdict = judge(opening_puzzle(), "e2e4 e7e5 b1c3")
        self.assertTrue(verdict.is_legal)
        self.assertFalse(verdict.is_correct)


class VerifyPuzzleTests(unittest.TestCase):
    """Test puzzle self-consistency checks."""

    def test_valid_puzzle(self):
        self.assertTrue(verify_puzzle(mate1_puzzle()))
        self.assertTrue(verify_puzzle(opening_puzzle()))

    def test_illegal_solution(self):
        puzzle = Puzzle(id="bad", level=MateLevel.MATE_IN_1, fen=START_FEN, solution_uci="e2e5")
        with self.assertLogs("chess_mate_bench.core.validation", level="WARNING"):
            self.assertFalse(verify_puzzle(puzzle))


if __name__ == "__main__":
    unittest.main()
