"""Tests for the Claude client wrapper."""

import asyncio
from types import SimpleNamespace

import pytest
from pydantic import SecretStr

from workflow_dashboard.core.config import ClaudeSettings
from workflow_dashboard.core.exceptions import ConfigurationError
from workflow_dashboard.models.claude_client import (
    ClaudeClient,
    calculate_cost,
    first_text_block,
)
from workflow_dashboard.models.schemas import LLMRequest


class FakeMessages:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def make_response(blocks, input_tokens=1000, output_tokens=1000):
    return SimpleNamespace(
        content=blocks,
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason="end_turn",
    )


def make_client(messages):
    return ClaudeClient(api_key="sk-test", model="claude-test", client=SimpleNamespace(messages=messages))


class TestCost:
    def test_thousand_in_thousand_out(self):
        assert calculate_cost(1000, 1000) == pytest.approx(0.018)

    def test_zero_tokens(self):
        assert calculate_cost(0, 0) == 0

    def test_output_priced_higher(self):
        assert calculate_cost(0, 1000) == pytest.approx(0.015)
        assert calculate_cost(1000, 0) == pytest.approx(0.003)


class TestFirstTextBlock:
    def test_text_block(self):
        assert first_text_block([SimpleNamespace(type="text", text="hello")]) == "hello"

    def test_non_text_first_block(self):
        blocks = [
            SimpleNamespace(type="tool_use", name="lookup"),
            SimpleNamespace(type="text", text="ignored"),
        ]
        assert first_text_block(blocks) == ""

    def test_empty_content(self):
        assert first_text_block([]) == ""


class TestComplete:
    def test_single_call_with_system_prompt(self):
        messages = FakeMessages(make_response([SimpleNamespace(type="text", text="# Output")]))
        client = make_client(messages)

        response = asyncio.run(
            client.complete(LLMRequest(prompt="Do it", system_prompt="You are QA.", max_tokens=500))
        )

        assert messages.calls == [
            {
                "model": "claude-test",
                "max_tokens": 500,
                "messages": [{"role": "user", "content": "Do it"}],
                "system": "You are QA.",
            }
        ]
        assert response.content == "# Output"
        assert response.model_used == "claude-test"
        assert response.tokens_used == 2000
        assert response.cost_estimate == pytest.approx(0.018)
        assert response.stop_reason == "end_turn"

    def test_system_omitted_when_empty(self):
        messages = FakeMessages(make_response([SimpleNamespace(type="text", text="ok")]))

        asyncio.run(make_client(messages).complete(LLMRequest(prompt="Do it")))

        assert "system" not in messages.calls[0]

    def test_non_text_response_yields_empty_content(self):
        messages = FakeMessages(make_response([SimpleNamespace(type="tool_use")], 10, 0))

        response = asyncio.run(make_client(messages).complete(LLMRequest(prompt="Do it")))

        assert response.content == ""
        assert response.input_tokens == 10

    def test_errors_propagate_without_retry(self):
        messages = FakeMessages(error=RuntimeError("overloaded"))

        with pytest.raises(RuntimeError, match="overloaded"):
            asyncio.run(make_client(messages).complete(LLMRequest(prompt="Do it")))

        assert len(messages.calls) == 1


class TestFromSettings:
    @pytest.mark.parametrize("key", ["", "   ", "your-api-key-here"])
    def test_rejects_missing_or_placeholder_key(self, key):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            ClaudeClient.from_settings(ClaudeSettings(api_key=SecretStr(key)))

    def test_uses_configured_model(self):
        client = ClaudeClient.from_settings(
            ClaudeSettings(api_key=SecretStr("sk-real"), model="claude-custom", timeout=30)
        )

        assert client.model == "claude-custom"
        assert client.timeout_seconds == 30
