"""
Unit tests for the command-line interface.
"""

import json
import logging
import tempfile
import unittest
from functools import partial
from pathlib import Path
from unittest.mock import patch

from chess_mate_bench.cli import (
    EXIT_TRANSPORT_FAILURES,
    build_config,
    create_argument_parser,
    fetch_main,
    main,
    parse_levels,
    setup_logging,
)
from chess_mate_bench.core.models import Config, MateLevel
from chess_mate_bench.core.runner import BenchmarkRunner
from chess_mate_bench.puzzle.database import PuzzleDatabase
from tests.fakes import BACK_RANK_FEN, MATE1_FEN, AnswerBookProvider, back_rank_puzzle, mate1_puzzle


class ArgumentTests(unittest.TestCase):
    """Test argument handling."""

    def test_parse_levels(self):
        self.assertEqual(parse_levels("mate3, mate1"), [MateLevel.MATE_IN_1, MateLevel.MATE_IN_3])
        with self.assertRaises(ValueError):
            parse_levels("mate9")
        with self.assertRaises(ValueError):
            parse_levels(" , ")

    def test_build_config_overrides(self):
        args = create_argument_parser().parse_args([
            "--concurrency", "6", "--levels", "mate2", "--output", "out.json", "--prompt-variant", "tagged",
        ])
        config = build_config(args, base=Config(api_key="sk"))
        self.assertEqual(config.concurrency, 6)
        self.assertEqual(config.levels, ["mate2"])
        self.assertEqual(config.output_path, "out.json")
        self.assertEqual(config.prompt_variant, "tagged")
        self.assertEqual(config.api_key, "sk")
        self.assertEqual(config.puzzles_dir, "bench")

    def test_invalid_prompt_variant(self):
        with self.assertRaises(SystemExit):
            create_argument_parser().parse_args(["--prompt-variant", "haiku"])


class LoggingTests(unittest.TestCase):
    """Test logging setup."""

    def tearDown(self):
        setup_logging()

    def test_quiet_by_default(self):
        setup_logging()
        handlers = logging.getLogger().handlers
        self.assertEqual(len(handlers), 1)
        self.assertIsInstance(handlers[0], logging.NullHandler)

    def test_verbose(self):
        setup_logging(verbose=True)
        root = logging.getLogger()
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(type(root.handlers[0]).__name__, "RichHandler")


class MainTests(unittest.TestCase):
    """Test the entry points end to end with a fake provider."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.output = self.root / "results" / "latest.json"
        self.models = self.root / "models.json"
        self.models.write_text(json.dumps([{"id": "good/model", "name": "Good"}, {"id": "flaky/model"}]))
        database = PuzzleDatabase(self.root / "bench")
        database.save_level(MateLevel.MATE_IN_1, [mate1_puzzle(), back_rank_puzzle()])

    def tearDown(self):
        self.temp_dir.cleanup()
        setup_logging()

    def argv(self, *extra):
        return [
            "--models", str(self.models),
            "--puzzles-dir", str(self.root / "bench"),
            "--output", str(self.output),
            *extra,
        ]

    def fake_provider(self, config, model):
        failing = {BACK_RANK_FEN} if model.id == "flaky/model" else set()
        return AnswerBookProvider(config, model, {MATE1_FEN: "g5h4", BACK_RANK_FEN: "Qf8#"}, failing)

    def test_leaderboard_without_snapshot(self):
        self.assertEqual(main(self.argv("--leaderboard")), 1)

    def fake_runner(self):
        return patch("chess_mate_bench.cli.BenchmarkRunner", partial(BenchmarkRunner, provider_factory=self.fake_provider))

    def test_run_writes_snapshot(self):
        with self.fake_runner():
            code = main(self.argv("--only", "good/model"))

        self.assertEqual(code, 0)
        data = json.loads(self.output.read_text())
        self.assertEqual([m["id"] for m in data["models"]], ["good/model"])
        self.assertEqual(data["models"][0]["score"], 100.0)
        self.assertEqual(main(self.argv("--leaderboard", "--details")), 0)

    def test_transport_failures_exit_code(self):
        with self.fake_runner():
            code = main(self.argv())

        self.assertEqual(code, EXIT_TRANSPORT_FAILURES)
        data = json.loads(self.output.read_text())
        failures = {m["id"]: m.get("failures", 0) for m in data["models"]}
        self.assertEqual(failures, {"good/model": 0, "flaky/model": 1})

    def test_unknown_model_id(self):
        self.assertEqual(main(self.argv("--only", "nobody/model")), 1)

    def test_missing_puzzles(self):
        args = self.argv()
        args[3] = str(self.root / "empty")
        self.assertEqual(main(args), 1)

    def test_fetch_rejects_zero_count(self):
        self.assertEqual(fetch_main(["--count", "0"]), 1)

    def test_fetch_writes_levels(self):
        with patch("chess_mate_bench.cli.LichessPuzzleFetcher") as fetcher_class, \
                patch("chess_mate_bench.cli.console") as fake_console:
            fetcher = fetcher_class.return_value.__enter__.return_value
            fetcher.collect.return_value = [mate1_puzzle()]
            code = fetch_main(["--count", "1", "--levels", "mate1", "--puzzles-dir", str(self.root / "fetched")])

        self.assertEqual(code, 0)
        fetcher.collect.assert_called_once_with(MateLevel.MATE_IN_1, 1, "normal")
        loaded = PuzzleDatabase(self.root / "fetched").load_level(MateLevel.MATE_IN_1)
        self.assertEqual([p.id for p in loaded], ["mate1-abc"])
        printed = [str(call.args[0]) for call in fake_console.print.call_args_list]
        self.assertIn("Puzzle sets: mate1=1, mate2=0, mate3=0", printed)


if __name__ == "__main__":
    unittest.main()
