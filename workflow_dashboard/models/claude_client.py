"""Anthropic Claude integration: one async completion per agent execution."""

import time
from typing import Any, Optional, Sequence

import structlog

try:
    from anthropic import AsyncAnthropic
except ImportError:
    raise ImportError(
        "anthropic package not found. Install with: pip install anthropic"
    )

from workflow_dashboard.core.config import ClaudeSettings
from workflow_dashboard.core.exceptions import ConfigurationError
from workflow_dashboard.models.schemas import LLMRequest, LLMResponse


logger = structlog.get_logger(__name__)

# USD per 1K tokens, flat for every model.
INPUT_PRICE_PER_1K = 0.003
OUTPUT_PRICE_PER_1K = 0.015


def calculate_cost(input_tokens: int, output_tokens: int) -> float:
    """Estimate the USD cost of a call from its token counts.

    Args:
        input_tokens: Number of input tokens.
        output_tokens: Number of output tokens.

    Returns:
        ``(input * 0.003 + output * 0.015) / 1000``.
    """
    return (input_tokens * INPUT_PRICE_PER_1K + output_tokens * OUTPUT_PRICE_PER_1K) / 1000


def first_text_block(content: Sequence[Any]) -> str:
    """Return the text of the first content block, or ``""`` if it is not text."""
    if not content:
        return ""
    block = content[0]
    if getattr(block, "type", None) == "text":
        return block.text
    return ""


class ClaudeClient:
    """Async client for Anthropic Claude models.

    Each :meth:`complete` call is a single attempt: there is no retry or
    backoff, and API errors reach the caller unchanged.
    """

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = 600.0,
        client: Optional[Any] = None,
    ) -> None:
        """Initialize Claude client.

        Args:
            api_key: Anthropic API key.
            model: Model to use for requests.
            timeout_seconds: Request timeout in seconds.
            client: Pre-built ``AsyncAnthropic``-compatible client.
        """
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.client = client or AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0
        )

        logger.info("claude_client_initialized", model=model)

    @classmethod
    def from_settings(cls, settings: ClaudeSettings) -> "ClaudeClient":
        """Build a client from :class:`ClaudeSettings`.

        Raises:
            ConfigurationError: If no usable API key is configured.
        """
        if not settings.is_configured:
            raise ConfigurationError("ANTHROPIC_API_KEY not set in environment variables")
        return cls(
            api_key=settings.api_key.get_secret_value(),
            model=settings.model,
            timeout_seconds=settings.timeout,
        )

    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Execute an async chat completion request.

        Args:
            request: The LLM request with prompt and parameters.

        Returns:
            LLMResponse with the model's response and metadata.
        """
        start_time = time.time()

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system_prompt:
            create_kwargs["system"] = request.system_prompt

        logger.info("claude_request_sending", model=self.model, max_tokens=request.max_tokens)
        try:
            response = await self.client.messages.create(**create_kwargs)
        except Exception as e:
            logger.warning("claude_request_failed", model=self.model, error=str(e))
            raise

        latency_ms = (time.time() - start_time) * 1000

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        cost = calculate_cost(input_tokens, output_tokens)

        logger.info(
            "claude_request_successful",
            model=self.model,
            tokens_used=input_tokens + output_tokens,
            cost=cost,
            latency_ms=round(latency_ms, 1),
        )

        return LLMResponse(
            content=first_text_block(response.content),
            model_used=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_estimate=cost,
            latency_ms=latency_ms,
            stop_reason=response.stop_reason,
        )
