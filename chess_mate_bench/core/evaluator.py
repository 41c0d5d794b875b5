"""
Single puzzle evaluation.

Drives one (model, puzzle) evaluation from prompt to scored result: build the
prompt, request a completion, resolve a candidate line from the raw text,
retry once with a larger token budget when the answer looks truncated, then
validate and score the line.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from ..llm.client import BaseLLMProvider, CompletionRequest, CompletionResponse
from .models import Config, EvaluationResult, Puzzle
from .parsing import Resolution, resolve_line
from .rules import new_position, render_board, side_to_move
from .validation import judge

logger = logging.getLogger(__name__)

RESULT_BLOCK_REGEX = re.compile(r"\[RESULT\](.*?)\[/RESULT\]", re.IGNORECASE | re.DOTALL)

BASE_SYSTEM_PROMPT = (
    "You are a chess engine assistant. Follow the format rules strictly. "
    "Output must contain only UCI moves. No explanation. No punctuation. "
    "If a promotion occurs, write it as a single trailing letter (e.g. a7a8q), not a7a8=Q."
)


@dataclass(frozen=True)
class Prompt:
    """System and user text for one puzzle."""

    system: str
    user: str


@dataclass(frozen=True)
class PromptVariant:
    """
    A prompt template.

    ``include_board`` adds an ASCII diagram and the side to move;
    ``result_tags`` asks for the answer inside ``[RESULT]...[/RESULT]`` and
    narrows extraction to the last tagged block.
    """

    name: str
    include_board: bool = False
    result_tags: bool = False

    def build(self, puzzle: Puzzle) -> Prompt:
        """Build the prompt for a puzzle."""
        plies = puzzle.required_plies
        system = BASE_SYSTEM_PROMPT
        if self.result_tags:
            system += " Wrap the final move line in [RESULT] and [/RESULT]."

        lines = [
            f"Task: Solve mate in {puzzle.level.mate_in}.",
            f"Return exactly {plies} ply of UCI moves separated by single spaces.",
            f"FEN: {puzzle.fen}",
        ]
        if self.include_board:
            board = new_position(puzzle.fen)
            lines.append(f"Side to move: {side_to_move(board).capitalize()}")
            lines.append(f"Board:\n{render_board(board)}")
        if puzzle.last_move_uci:
            lines.append(f"Opponent last move (context): {puzzle.last_move_uci}")
        if self.result_tags:
            lines.append("Output format example: [RESULT]e2e4[/RESULT] (mate in 1) "
                         "or [RESULT]e2e4 e7e5 g1f3[/RESULT] (mate in 2)")
            lines.append("Now output only the tagged UCI line:")
        else:
            lines.append("Output format example: e2e4 (mate in 1) or e2e4 e7e5 g1f3 (mate in 2)")
            lines.append("Now output only the UCI line:")

        return Prompt(system=system, user="\n".join(lines))

    def focus(self, text: str) -> str:
        """Narrow raw output to the part that should hold the answer."""
        if not self.result_tags:
            return text
        blocks = RESULT_BLOCK_REGEX.findall(text)
        if blocks and blocks[-1].strip():
            return blocks[-1]
        return text


PROMPT_VARIANTS: Dict[str, PromptVariant] = {
    "plain": PromptVariant("plain"),
    "board": PromptVariant("board", include_board=True),
    "tagged": PromptVariant("tagged", include_board=True, result_tags=True),
}


def get_prompt_variant(name: str) -> PromptVariant:
    """Look up a prompt variant by name."""
    try:
        return PROMPT_VARIANTS[name.lower()]
    except KeyError:
        available = ", ".join(PROMPT_VARIANTS)
        raise ValueError(f"Unknown prompt variant '{name}'. Available: {available}")


class PuzzleEvaluator:
    """
    Evaluates puzzles for one model.

    Transport failures from the provider propagate as ``LLMProviderError``;
    they are never turned into an incorrect answer.
    """

    def __init__(self, provider: BaseLLMProvider, config: Config,
                 variant: Optional[PromptVariant] = None):
        """
        Initialize the evaluator.

        Args:
            provider: Completion provider bound to the model under test
            config: Global configuration (retry policy, prompt variant)
            variant: Prompt variant override
        """
        self.provider = provider
        self.model = provider.model
        self.config = config
        self.variant = variant or get_prompt_variant(config.prompt_variant)

    async def evaluate(self, puzzle: Puzzle) -> EvaluationResult:
        """
        Run one evaluation to completion.

        At most one retry is made, and only when nothing could be parsed,
        the completion hit its token budget and the retry budget is larger.
        """
        prompt = self.variant.build(puzzle)
        budget = self.model.max_tokens

        logger.debug(f"[{self.model.id}] {puzzle.id}: requesting completion ({budget} tokens)")
        response = await self.provider.complete(self._request(prompt, budget))
        resolution = self._resolve(puzzle, response)

        retried = False
        if not resolution.found and response.hit_token_limit(budget):
            retry_budget = self.config.retry_budget(budget)
            if retry_budget <= budget:
                logger.info(
                    f"[{self.model.id}] {puzzle.id}: output truncated at {budget} tokens, "
                    f"retry budget {retry_budget} is no larger, not retrying"
                )
                return self._package(puzzle, response, resolution, False)
            logger.info(
                f"[{self.model.id}] {puzzle.id}: no moves in truncated output, "
                f"retrying with {retry_budget} tokens"
            )
            response = await self.provider.complete(self._request(prompt, retry_budget))
            resolution = self._resolve(puzzle, response)
            retried = True

        return self._package(puzzle, response, resolution, retried)

    def _request(self, prompt: Prompt, max_tokens: int) -> CompletionRequest:
        return CompletionRequest(
            system=prompt.system,
            user=prompt.user,
            temperature=self.model.temperature,
            max_tokens=max_tokens,
        )

    def _resolve(self, puzzle: Puzzle, response: CompletionResponse) -> Resolution:
        resolution = resolve_line(puzzle.fen, puzzle.required_plies, self.variant.focus(response.text))
        logger.debug(
            f"[{self.model.id}] {puzzle.id}: parsed '{resolution.line}' via {resolution.method.value}"
        )
        return resolution

    def _package(self, puzzle: Puzzle, response: CompletionResponse,
                 resolution: Resolution, retried: bool) -> EvaluationResult:
        is_legal: Optional[bool] = None
        is_correct = False
        applied_plies = 0

        if resolution.found:
            verdict = judge(puzzle, resolution.line)
            is_legal = verdict.is_legal
            is_correct = verdict.is_correct
            applied_plies = verdict.applied_plies

        return EvaluationResult(
            move=resolution.line,
            is_correct=is_correct,
            is_legal=is_legal,
            parse_method=resolution.method,
            raw_output=response.text,
            latency_ms=response.latency_ms,
            prompt_tokens=response.prompt_tokens,
            completion_tokens=response.completion_tokens,
            total_tokens=response.total_tokens,
            applied_plies=applied_plies,
            retried=retried,
        )
