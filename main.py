#!/usr/bin/env python3
"""
Chess Mate Benchmark - Main Entry Point

Benchmarks language models on mate-in-N chess puzzles. Each model is asked for
the forced mating line of every puzzle; answers are parsed, replayed under the
rules of chess and compared with the known solution.

Quick Examples:
    # Fetch ten puzzles per level from Lichess into bench/
    chess-mate-bench-fetch --count 10

    # Run every model in bench/models.json (requires OPENROUTER_API_KEY)
    export OPENROUTER_API_KEY=your-api-key
    python main.py

    # Show the saved leaderboard with every puzzle's answers
    python main.py --leaderboard --details

Installation:
    pip install -e .
"""

import sys
from pathlib import Path

# Add the project root to the Python path so we can import our package
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

try:
    from chess_mate_bench.cli import main
except ImportError as e:
    print(f"Error importing chess_mate_bench package: {e}", file=sys.stderr)
    print("\nInstall the package in development mode:", file=sys.stderr)
    print("  pip install -e .", file=sys.stderr)
    sys.exit(1)

if __name__ == "__main__":
    sys.exit(main())
