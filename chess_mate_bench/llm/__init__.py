"""
LLM package for Chess Mate Benchmark.

This package contains the completion providers used to put mate puzzles to
language models, along with the model lineup loader.
"""

from .client import (
    AnthropicProvider,
    BaseLLMProvider,
    CompletionRequest,
    CompletionResponse,
    LLMProviderError,
    OpenRouterProvider,
    create_provider,
    extract_response_text,
)
from .models import DEFAULT_MODELS, load_models

__all__ = [
    # Requests and responses
    "CompletionRequest",
    "CompletionResponse",
    "extract_response_text",

    # Provider base and implementations
    "BaseLLMProvider",
    "OpenRouterProvider",
    "AnthropicProvider",
    "create_provider",

    # Exceptions
    "LLMProviderError",

    # Model lineup
    "DEFAULT_MODELS",
    "load_models",
]
