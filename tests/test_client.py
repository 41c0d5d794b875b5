"""
Unit tests for completion providers and response normalization.
"""

import importlib.util
import json
import time
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai

from chess_mate_bench.core.models import BenchModel, Config
from chess_mate_bench.llm.client import (
    AnthropicProvider,
    BaseLLMProvider,
    CompletionRequest,
    CompletionResponse,
    LLMProviderError,
    OpenRouterProvider,
    completion_from_envelope,
    create_provider,
    extract_response_text,
)
from tests.fakes import async_test


def envelope_with(message=None, **choice):
    if message is not None:
        choice["message"] = message
    return {"choices": [choice]}


class ExtractResponseTextTests(unittest.TestCase):
    """Test the prioritized text extraction strategies."""

    def test_string_content(self):
        self.assertEqual(extract_response_text(envelope_with({"content": "g5h4"})), "g5h4")

    def test_content_parts(self):
        envelope = envelope_with({"content": [{"type": "text", "text": "e2e4"}, {"text": " e7e5"}, "!"]})
        self.assertEqual(extract_response_text(envelope), "e2e4 e7e5!")

    def test_reasoning_when_content_empty(self):
        envelope = envelope_with({"content": "", "reasoning": "Mate with g5h4"})
        self.assertEqual(extract_response_text(envelope), "Mate with g5h4")

    def test_reasoning_details(self):
        envelope = envelope_with({
            "content": None,
            "reasoning_details": [{"type": "reasoning.text", "text": "Qh4#"}, {"text": ""}, "junk"],
        })
        self.assertEqual(extract_response_text(envelope), "Qh4#")

    def test_completion_style_choice_text(self):
        self.assertEqual(extract_response_text(envelope_with(text="f1f8")), "f1f8")

    def test_content_preferred_over_reasoning(self):
        envelope = envelope_with({"content": "g5h4", "reasoning": "g5g4"})
        self.assertEqual(extract_response_text(envelope), "g5h4")

    def test_fallback_is_json_of_choice(self):
        envelope = envelope_with({"content": None}, finish_reason="length")
        text = extract_response_text(envelope)
        self.assertEqual(json.loads(text)["finish_reason"], "length")

    def test_fallback_is_json_of_envelope_without_choices(self):
        envelope = {"id": "gen-1", "choices": []}
        self.assertEqual(json.loads(extract_response_text(envelope))["id"], "gen-1")

    def test_unexpected_shapes_do_not_raise(self):
        extract_response_text({"choices": "oops"})
        extract_response_text({"choices": [None]})
        extract_response_text({"choices": [{"message": "not a dict"}]})


class CompletionResponseTests(unittest.TestCase):
    """Test usage mapping and truncation detection."""

    def test_completion_from_envelope(self):
        envelope = envelope_with({"content": "g5h4"}, finish_reason="stop")
        envelope["usage"] = {"prompt_tokens": 90, "completion_tokens": 4, "total_tokens": 94}
        completion = completion_from_envelope(envelope, latency_ms=250)
        self.assertEqual(completion.text, "g5h4")
        self.assertEqual(completion.latency_ms, 250)
        self.assertEqual(completion.prompt_tokens, 90)
        self.assertEqual(completion.completion_tokens, 4)
        self.assertEqual(completion.total_tokens, 94)
        self.assertEqual(completion.finish_reason, "stop")

    def test_missing_usage(self):
        completion = completion_from_envelope(envelope_with({"content": "x"}), latency_ms=1)
        self.assertIsNone(completion.prompt_tokens)
        self.assertIsNone(completion.finish_reason)

    def test_hit_token_limit(self):
        self.assertTrue(CompletionResponse("", 1, completion_tokens=128).hit_token_limit(128))
        self.assertTrue(CompletionResponse("", 1, finish_reason="length").hit_token_limit(128))
        self.assertTrue(CompletionResponse("", 1, finish_reason="max_tokens").hit_token_limit(128))
        self.assertFalse(CompletionResponse("", 1, completion_tokens=20, finish_reason="stop").hit_token_limit(128))
        self.assertFalse(CompletionResponse("", 1).hit_token_limit(128))


class SlowProvider(BaseLLMProvider):
    name = "slow"

    def _call(self, request):
        time.sleep(0.5)
        return CompletionResponse("g5h4", 500)


class ProviderTests(unittest.TestCase):
    """Test provider construction and error mapping."""

    def setUp(self):
        self.model = BenchModel(id="openai/gpt-4o-mini", name="GPT-4o Mini")
        self.request = CompletionRequest(system="sys", user="user", temperature=0.0, max_tokens=128)

    def test_missing_api_key(self):
        with self.assertRaises(LLMProviderError) as context:
            OpenRouterProvider(Config(api_key=None), self.model)
        self.assertIn("OPENROUTER_API_KEY", str(context.exception))

    def test_unknown_provider(self):
        model = BenchModel(id="x", name="X", provider="carrier-pigeon")
        with self.assertRaises(LLMProviderError) as context:
            create_provider(Config(api_key="sk"), model)
        self.assertIn("Unsupported provider", str(context.exception))

    @patch("chess_mate_bench.llm.client.openai.OpenAI")
    def test_client_configuration(self, mock_openai):
        config = Config(api_key="sk-test", http_referer="https://bench.example", app_title="Bench")
        provider = create_provider(config, self.model)

        self.assertIsInstance(provider, OpenRouterProvider)
        kwargs = mock_openai.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk-test")
        self.assertEqual(kwargs["base_url"], "https://openrouter.ai/api/v1")
        self.assertEqual(kwargs["max_retries"], 0)
        self.assertEqual(kwargs["default_headers"], {"HTTP-Referer": "https://bench.example", "X-Title": "Bench"})

    @patch("chess_mate_bench.llm.client.openai.OpenAI")
    def test_call_returns_normalized_completion(self, mock_openai):
        envelope = envelope_with({"content": "g5h4"}, finish_reason="stop")
        envelope["usage"] = {"prompt_tokens": 10, "completion_tokens": 3, "total_tokens": 13}
        raw = MagicMock()
        raw.model_dump.return_value = envelope
        mock_openai.return_value.chat.completions.create.return_value = raw

        provider = OpenRouterProvider(Config(api_key="sk"), self.model)
        completion = provider._call(self.request)

        self.assertEqual(completion.text, "g5h4")
        self.assertEqual(completion.total_tokens, 13)
        kwargs = mock_openai.return_value.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "openai/gpt-4o-mini")
        self.assertEqual(kwargs["max_tokens"], 128)
        self.assertEqual([m["role"] for m in kwargs["messages"]], ["system", "user"])

    @patch("chess_mate_bench.llm.client.openai.OpenAI")
    def test_status_error_becomes_provider_error(self, mock_openai):
        http_response = httpx.Response(502, request=httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions"))
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIStatusError(
            "Bad gateway", response=http_response, body=None
        )

        provider = OpenRouterProvider(Config(api_key="sk"), self.model)
        with self.assertRaises(LLMProviderError) as context:
            provider._call(self.request)
        self.assertEqual(context.exception.status, 502)
        self.assertEqual(context.exception.model_id, "openai/gpt-4o-mini")

    @patch("chess_mate_bench.llm.client.openai.OpenAI")
    def test_error_body_without_choices(self, mock_openai):
        raw = MagicMock()
        raw.model_dump.return_value = {"choices": None, "error": {"message": "rate limited", "code": 429}}
        mock_openai.return_value.chat.completions.create.return_value = raw

        provider = OpenRouterProvider(Config(api_key="sk"), self.model)
        with self.assertRaises(LLMProviderError) as context:
            provider._call(self.request)
        self.assertIn("rate limited", str(context.exception))

    @async_test
    async def test_timeout_becomes_provider_error(self):
        provider = SlowProvider(Config(request_timeout=0.05), self.model)
        with self.assertRaises(LLMProviderError) as context:
            await provider.complete(self.request)
        self.assertIn("timed out", str(context.exception))



def anthropic_message(content, input_tokens=20, output_tokens=4, stop_reason="end_turn"):
    message = MagicMock()
    message.content = content
    message.usage = SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens)
    message.stop_reason = stop_reason
    return message


@unittest.skipUnless(importlib.util.find_spec("anthropic"), "anthropic package not installed")
class AnthropicProviderTests(unittest.TestCase):
    """Test the Anthropic messages provider with a mocked client."""

    def setUp(self):
        self.model = BenchModel(id="claude-3-5-haiku-latest", name="Claude Haiku", provider="anthropic")
        self.config = Config(anthropic_api_key="sk-ant")
        self.request = CompletionRequest(system="sys", user="user", temperature=0.0, max_tokens=128)

    def test_missing_api_key(self):
        with self.assertRaises(LLMProviderError) as context:
            AnthropicProvider(Config(), self.model)
        self.assertIn("ANTHROPIC_API_KEY", str(context.exception))

    @patch("anthropic.Anthropic")
    def test_client_configuration(self, mock_anthropic):
        provider = create_provider(self.config, self.model)

        self.assertIsInstance(provider, AnthropicProvider)
        kwargs = mock_anthropic.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk-ant")
        self.assertEqual(kwargs["max_retries"], 0)
        self.assertEqual(kwargs["timeout"], 120.0)

    @patch("anthropic.Anthropic")
    def test_text_blocks_and_usage(self, mock_anthropic):
        mock_anthropic.return_value.messages.create.return_value = anthropic_message([
            SimpleNamespace(type="text", text="Qh4# is "),
            SimpleNamespace(type="tool_use", name="ignored"),
            SimpleNamespace(type="text", text="g5h4"),
        ])

        provider = AnthropicProvider(self.config, self.model)
        completion = provider._call(self.request)

        self.assertEqual(completion.text, "Qh4# is g5h4")
        self.assertEqual(completion.prompt_tokens, 20)
        self.assertEqual(completion.completion_tokens, 4)
        self.assertEqual(completion.total_tokens, 24)
        self.assertEqual(completion.finish_reason, "end_turn")
        self.assertFalse(completion.hit_token_limit(128))

        kwargs = mock_anthropic.return_value.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-3-5-haiku-latest")
        self.assertEqual(kwargs["max_tokens"], 128)
        self.assertEqual(kwargs["system"], "sys")
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "user"}])

    @patch("anthropic.Anthropic")
    def test_no_text_blocks_falls_back_to_json(self, mock_anthropic):
        message = anthropic_message([SimpleNamespace(type="thinking", thinking="hmm")],
                                    output_tokens=None, stop_reason="max_tokens")
        message.model_dump.return_value = {"content": [{"type": "thinking", "thinking": "hmm"}]}
        mock_anthropic.return_value.messages.create.return_value = message

        completion = AnthropicProvider(self.config, self.model)._call(self.request)

        self.assertEqual(json.loads(completion.text), {"content": [{"type": "thinking", "thinking": "hmm"}]})
        self.assertIsNone(completion.total_tokens)
        self.assertEqual(completion.finish_reason, "max_tokens")
        self.assertTrue(completion.hit_token_limit(128))

    @patch("anthropic.Anthropic")
    def test_status_error_becomes_provider_error(self, mock_anthropic):
        import anthropic

        http_response = httpx.Response(529, request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
        mock_anthropic.return_value.messages.create.side_effect = anthropic.APIStatusError(
            "Overloaded", response=http_response, body=None
        )

        provider = AnthropicProvider(self.config, self.model)
        with self.assertRaises(LLMProviderError) as context:
            provider._call(self.request)
        self.assertEqual(context.exception.status, 529)
        self.assertEqual(context.exception.model_id, "claude-3-5-haiku-latest")
        self.assertIn("Overloaded", str(context.exception))


if __name__ == "__main__":
    unittest.main()
