#!/usr/bin/env python3
"""
Setup script for Chess Mate Benchmark.

A tool for benchmarking Large Language Models on mate-in-N chess puzzles by
checking their proposed mating lines for legality and correctness.
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8') if (this_directory / "README.md").exists() else ""

# Read version from package
version_file = this_directory / "chess_mate_bench" / "__init__.py"
version = "0.1.0"  # Default version
if version_file.exists():
    with open(version_file, encoding='utf-8') as f:
        for line in f:
            if line.startswith('__version__'):
                version = line.split('=')[1].strip().strip('"').strip("'")
                break

setup(
    name="chess-mate-bench",
    version=version,
    description="Benchmark LLMs on mate-in-N chess puzzles",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Chess Mate Bench Team",

    # Package discovery
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",

    # Dependencies
    install_requires=[
        "chess>=1.10.0",
        "rich>=13.0.0",
        "openai>=1.0.0",
        "httpx>=0.24.0",
        "python-dotenv>=1.0.0",
    ],

    # Optional dependencies
    extras_require={
        "anthropic": ["anthropic>=0.3.0"],
        "dev": [
            "pytest>=7.0.0",
            "anthropic>=0.3.0",
            "mypy>=1.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "isort>=5.0.0",
        ],
    },

    # Entry points for CLI
    entry_points={
        "console_scripts": [
            "chess-mate-bench=chess_mate_bench.cli:main",
            "chess-mate-bench-fetch=chess_mate_bench.cli:fetch_main",
        ],
    },

    # Classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Games/Entertainment :: Board Games",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Framework :: AsyncIO",
    ],

    # Keywords
    keywords=[
        "chess",
        "llm",
        "benchmark",
        "puzzles",
        "checkmate",
        "openrouter",
        "evaluation",
    ],

    zip_safe=False,

    # Test configuration
    test_suite="tests",
)
