"""
Model lineup for the benchmark.

Models under test are listed in a JSON file (``bench/models.json`` by default)
as objects with ``id``, ``name`` and optional ``temperature``, ``maxTokens``
and ``provider`` keys. A small default lineup is used when no file exists.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Union

from ..core.models import BenchModel

logger = logging.getLogger(__name__)

# Default lineup (OpenRouter model ids)
DEFAULT_MODELS: List[BenchModel] = [
    BenchModel(id="openai/gpt-4o-mini", name="GPT-4o Mini"),
    BenchModel(id="anthropic/claude-3.5-haiku", name="Claude 3.5 Haiku"),
    BenchModel(id="google/gemini-2.0-flash-001", name="Gemini 2.0 Flash"),
    BenchModel(id="deepseek/deepseek-r1", name="DeepSeek R1", max_tokens=512),
]


def load_models(path: Union[str, Path]) -> List[BenchModel]:
    """
    Load the model lineup from a JSON file.

    Falls back to :data:`DEFAULT_MODELS` when the file does not exist.

    Raises:
        ValueError: If the file is not a list of model objects or repeats an id
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"No model list at {path}, using the default lineup")
        return list(DEFAULT_MODELS)

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of models")

    models = [BenchModel.from_dict(item) for item in data]
    ids = [model.id for model in models]
    duplicates = sorted({model_id for model_id in ids if ids.count(model_id) > 1})
    if duplicates:
        raise ValueError(f"Duplicate model ids in {path}: {', '.join(duplicates)}")

    logger.info(f"Loaded {len(models)} models from {path}")
    return models
