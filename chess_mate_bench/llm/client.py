"""
LLM client module for puzzle completions.

This module provides a unified interface for requesting completions from
language model providers, normalizing their response envelopes into plain text
plus usage metadata, and reporting transport failures as a single error type.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

import openai

from ..core.models import BenchModel, Config

logger = logging.getLogger(__name__)

# Finish reasons that mean the completion stopped at its token budget
TRUNCATION_FINISH_REASONS = frozenset({"length", "max_tokens"})


class LLMProviderError(Exception):
    """Transport-level failure talking to a completion provider."""

    def __init__(self, message: str, status: Optional[int] = None, model_id: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.model_id = model_id


@dataclass(frozen=True)
class CompletionRequest:
    """A single chat completion request."""

    system: str
    user: str
    temperature: float = 0.0
    max_tokens: int = 128


@dataclass(frozen=True)
class CompletionResponse:
    """Normalized completion text with timing and usage metadata."""

    text: str
    latency_ms: int
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    finish_reason: Optional[str] = None

    def hit_token_limit(self, budget: int) -> bool:
        """True if the completion most likely stopped because it ran out of tokens."""
        if self.completion_tokens is not None and self.completion_tokens >= budget:
            return True
        return self.finish_reason in TRUNCATION_FINISH_REASONS


# ---------------------------------------------------------------------------
# Response envelope normalization
# ---------------------------------------------------------------------------

def _first_choice(envelope: Mapping[str, Any]) -> Mapping[str, Any]:
    choices = envelope.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
        return choices[0]
    return {}


def _message(choice: Mapping[str, Any]) -> Mapping[str, Any]:
    message = choice.get("message")
    return message if isinstance(message, Mapping) else {}


def _string_content(choice: Mapping[str, Any]) -> Optional[str]:
    content = _message(choice).get("content")
    if isinstance(content, str) and content.strip():
        return content
    return None


def _content_parts(choice: Mapping[str, Any]) -> Optional[str]:
    content = _message(choice).get("content")
    if not isinstance(content, list):
        return None
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, Mapping) and isinstance(part.get("text"), str):
            parts.append(part["text"])
    text = "".join(parts)
    return text or None


def _reasoning(choice: Mapping[str, Any]) -> Optional[str]:
    reasoning = _message(choice).get("reasoning")
    if isinstance(reasoning, str) and reasoning.strip():
        return reasoning
    return None


def _reasoning_details(choice: Mapping[str, Any]) -> Optional[str]:
    details = _message(choice).get("reasoning_details")
    if not isinstance(details, list):
        return None
    parts = [
        detail["text"] for detail in details
        if isinstance(detail, Mapping) and isinstance(detail.get("text"), str) and detail["text"]
    ]
    return "\n".join(parts) or None


def _choice_text(choice: Mapping[str, Any]) -> Optional[str]:
    text = choice.get("text")
    if isinstance(text, str) and text.strip():
        return text
    return None


# Tried in order against the first choice; the first non-empty text wins
RESPONSE_TEXT_STRATEGIES: Sequence[Callable[[Mapping[str, Any]], Optional[str]]] = (
    _string_content,
    _content_parts,
    _reasoning,
    _reasoning_details,
    _choice_text,
)


def _safe_json(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def extract_response_text(envelope: Mapping[str, Any]) -> str:
    """
    Pull the model's text out of a chat completion envelope.

    Providers disagree on where the text lives: plain string content, arrays
    of content parts, reasoning fields with empty content, or completion-style
    choice text. When none of these yield text, the first choice (or the whole
    envelope) is returned as JSON so there is still something to inspect.
    Never raises on an unexpected shape.
    """
    choice = _first_choice(envelope)
    for strategy in RESPONSE_TEXT_STRATEGIES:
        text = strategy(choice)
        if text:
            return text
    return _safe_json(choice or envelope)


def _usage_int(usage: Mapping[str, Any], key: str) -> Optional[int]:
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def completion_from_envelope(envelope: Mapping[str, Any], latency_ms: int) -> CompletionResponse:
    """Build a CompletionResponse from an OpenAI-style chat completion envelope."""
    usage = envelope.get("usage")
    usage = usage if isinstance(usage, Mapping) else {}
    finish_reason = _first_choice(envelope).get("finish_reason")
    return CompletionResponse(
        text=extract_response_text(envelope),
        latency_ms=latency_ms,
        prompt_tokens=_usage_int(usage, "prompt_tokens"),
        completion_tokens=_usage_int(usage, "completion_tokens"),
        total_tokens=_usage_int(usage, "total_tokens"),
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
    )


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class BaseLLMProvider(ABC):
    """Abstract base class for completion providers."""

    name = "base"

    def __init__(self, config: Config, model: BenchModel):
        """Initialize the provider for one model."""
        self.config = config
        self.model = model

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Request a completion without blocking the event loop.

        Args:
            request: Prompts, temperature and token budget

        Returns:
            Normalized completion

        Raises:
            LLMProviderError: On timeout or any transport failure
        """
        timeout_s = self.config.request_timeout
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._call, request),
                timeout=timeout_s
            )
        except asyncio.TimeoutError:
            raise LLMProviderError(
                f"{self.name} request for {self.model.id} timed out after {timeout_s}s",
                model_id=self.model.id
            )

    @abstractmethod
    def _call(self, request: CompletionRequest) -> CompletionResponse:
        """Make the synchronous provider call."""

    @staticmethod
    def _timed(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Tuple[Any, int]:
        start = time.perf_counter()
        result = fn(*args, **kwargs)
        return result, int(round((time.perf_counter() - start) * 1000))


class OpenRouterProvider(BaseLLMProvider):
    """OpenAI-compatible chat completions, OpenRouter by default."""

    name = "openrouter"

    def __init__(self, config: Config, model: BenchModel):
        super().__init__(config, model)

        if not config.api_key:
            raise LLMProviderError(
                "Missing OPENROUTER_API_KEY. Add it to .env (OPENROUTER_API_KEY=...) "
                "or export it in your shell.",
                model_id=model.id
            )

        self.client = openai.OpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.request_timeout,
            max_retries=0,
            default_headers={
                "HTTP-Referer": config.http_referer,
                "X-Title": config.app_title,
            },
        )

    def _call(self, request: CompletionRequest) -> CompletionResponse:
        """Make synchronous chat completion call."""
        try:
            response, latency_ms = self._timed(
                self.client.chat.completions.create,
                model=self.model.id,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                messages=[
                    {"role": "system", "content": request.system},
                    {"role": "user", "content": request.user},
                ],
            )
        except openai.APIStatusError as e:
            raise LLMProviderError(
                f"OpenRouter error for {self.model.id}: {e.status_code} {e.message}",
                status=e.status_code,
                model_id=self.model.id
            )
        except openai.APIError as e:
            raise LLMProviderError(f"OpenRouter request failed for {self.model.id}: {e}", model_id=self.model.id)

        envelope: Dict[str, Any] = response.model_dump()
        if not envelope.get("choices") and envelope.get("error"):
            raise LLMProviderError(
                f"OpenRouter error body for {self.model.id}: {_safe_json(envelope['error'])}",
                model_id=self.model.id
            )

        return completion_from_envelope(envelope, latency_ms)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude messages API."""

    name = "anthropic"

    def __init__(self, config: Config, model: BenchModel):
        super().__init__(config, model)

        # Import Anthropic only when needed
        try:
            import anthropic
            self._anthropic = anthropic
        except ImportError:
            raise LLMProviderError(
                "Anthropic package not installed. Install with: pip install 'chess-mate-bench[anthropic]'"
            )

        if not config.anthropic_api_key:
            raise LLMProviderError(
                "ANTHROPIC_API_KEY environment variable is required for Anthropic provider",
                model_id=model.id
            )

        self.client = self._anthropic.Anthropic(
            api_key=config.anthropic_api_key,
            timeout=config.request_timeout,
            max_retries=0,
        )

    def _call(self, request: CompletionRequest) -> CompletionResponse:
        """Make synchronous Anthropic API call."""
        try:
            response, latency_ms = self._timed(
                self.client.messages.create,
                model=self.model.id,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                system=request.system,
                messages=[{"role": "user", "content": request.user}],
            )
        except self._anthropic.APIStatusError as e:
            raise LLMProviderError(
                f"Anthropic error for {self.model.id}: {e.status_code} {e.message}",
                status=e.status_code,
                model_id=self.model.id
            )
        except self._anthropic.APIError as e:
            raise LLMProviderError(f"Anthropic request failed for {self.model.id}: {e}", model_id=self.model.id)

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text:
            text = _safe_json(response.model_dump())

        usage = response.usage
        input_tokens = getattr(usage, "input_tokens", None)
        output_tokens = getattr(usage, "output_tokens", None)
        total = input_tokens + output_tokens if input_tokens is not None and output_tokens is not None else None

        return CompletionResponse(
            text=text,
            latency_ms=latency_ms,
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
            total_tokens=total,
            finish_reason=response.stop_reason,
        )


# Registry of available providers
PROVIDERS: Dict[str, type] = {
    "openrouter": OpenRouterProvider,
    "anthropic": AnthropicProvider,
}


def create_provider(config: Config, model: BenchModel) -> BaseLLMProvider:
    """
    Create the provider for a model.

    Raises:
        LLMProviderError: If the provider is unknown or cannot be initialized
    """
    provider_class = PROVIDERS.get(model.provider.lower())
    if not provider_class:
        available = ", ".join(PROVIDERS.keys())
        raise LLMProviderError(
            f"Unsupported provider '{model.provider}'. Available: {available}",
            model_id=model.id
        )

    provider = provider_class(config, model)
    logger.info(f"Initialized {provider.name} provider for {model}")
    return provider
