"""
Cost estimation for Chess Mate Benchmark.

This module estimates what a benchmark snapshot cost by combining the token
usage recorded in its results with per-token pricing published in the
OpenRouter model listing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from .models import BenchModel
from .results import Snapshot

logger = logging.getLogger(__name__)

OPENROUTER_MODELS_URL = "https://openrouter.ai/api/v1/models"


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for one model, in USD."""

    prompt_per_token: Optional[float] = None
    completion_per_token: Optional[float] = None

    @property
    def known(self) -> bool:
        return bool(self.prompt_per_token) or bool(self.completion_per_token)

    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        """Calculate total cost for given usage."""
        return ((self.prompt_per_token or 0.0) * prompt_tokens
                + (self.completion_per_token or 0.0) * completion_tokens)


@dataclass(frozen=True)
class TokenUsage:
    """Token totals for one model across a snapshot."""

    prompt: int = 0
    completion: int = 0
    total: int = 0
    samples: int = 0


@dataclass
class ModelCost:
    """Estimated cost line for one model."""

    model: BenchModel
    usage: TokenUsage
    cost: Optional[float] = None
    note: str = ""


@dataclass
class CostEstimate:
    """Summary of estimated costs for a snapshot."""

    lines: List[ModelCost] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return sum(line.cost for line in self.lines if line.cost is not None)


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def parse_pricing(payload: Mapping[str, Any]) -> Dict[str, ModelPricing]:
    """Extract per-token pricing from an OpenRouter ``/models`` payload."""
    pricing: Dict[str, ModelPricing] = {}
    for entry in payload.get("data") or []:
        if not isinstance(entry, Mapping) or "id" not in entry:
            continue
        prices = entry.get("pricing") or {}
        pricing[entry["id"]] = ModelPricing(
            prompt_per_token=_to_float(prices.get("prompt")),
            completion_per_token=_to_float(prices.get("completion")),
        )
    return pricing


def fetch_openrouter_pricing(api_key: Optional[str] = None,
                             client: Optional[httpx.Client] = None) -> Dict[str, ModelPricing]:
    """
    Fetch the OpenRouter model listing and return pricing by model id.

    Raises:
        httpx.HTTPError: If the listing cannot be fetched
    """
    headers = {"Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    owns_client = client is None
    client = client or httpx.Client(timeout=30.0)
    try:
        response = client.get(OPENROUTER_MODELS_URL, headers=headers)
        response.raise_for_status()
        return parse_pricing(response.json())
    finally:
        if owns_client:
            client.close()


def sum_tokens(snapshot: Snapshot, model_id: str) -> TokenUsage:
    """Total the token usage recorded for a model."""
    prompt = completion = total = samples = 0
    for entry in snapshot.puzzles:
        result = entry.results.get(model_id)
        if result is None:
            continue
        prompt += result.prompt_tokens or 0
        completion += result.completion_tokens or 0
        total += result.total_tokens or 0
        samples += 1
    return TokenUsage(prompt, completion, total, samples)


def estimate_costs(snapshot: Snapshot, models: Sequence[BenchModel],
                   pricing: Mapping[str, ModelPricing]) -> CostEstimate:
    """Estimate the USD cost of each model's results in a snapshot."""
    estimate = CostEstimate()
    for model in models:
        usage = sum_tokens(snapshot, model.id)
        prices = pricing.get(model.id)
        line = ModelCost(model=model, usage=usage)

        if prices is None or not prices.known:
            line.note = f"pricing not found for model id {model.id}"
        elif usage.samples == 0 or usage.total == 0:
            line.note = "token usage not found in snapshot (rerun the benchmark to populate usage)"
        else:
            line.cost = prices.calculate_cost(usage.prompt, usage.completion)

        estimate.lines.append(line)
    return estimate
