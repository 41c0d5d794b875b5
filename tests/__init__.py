"""
Test package for Chess Mate Benchmark.

This package contains unit tests for the benchmark: move extraction, line
validation, puzzle evaluation, batch running, result snapshots, the puzzle
source and the command-line interface.
"""
