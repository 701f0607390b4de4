"""Anthropic (Claude) LLM name provider.

Uses the tool use pattern for reliable structured output: the metadata
schema is declared as a tool and Claude is forced to call it.
"""

import asyncio
import logging
import random

import anthropic

from ..errors import ProviderError
from .llm import LLMNameProvider, TokenUsage
from .debug_log import log_request_response

_TRANSIENT_ANTHROPIC_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
    anthropic.RateLimitError,
)
_MAX_API_RETRIES = 2

logger = logging.getLogger(__name__)


def _make_structured_tool(schema_name: str, response_schema: dict) -> dict:
    """Create a tool definition that forces structured output."""
    return {
        "name": schema_name,
        "description": (
            "Return your response as structured data. "
            "You MUST call this tool with your complete response."
        ),
        "input_schema": response_schema,
    }


def _extract_tool_input(response) -> dict | None:
    for block in response.content:
        if block.type == "tool_use":
            return block.input
    return None


def _extract_usage(response) -> TokenUsage:
    if getattr(response, "usage", None) is None:
        return TokenUsage()
    return TokenUsage(
        input_tokens=getattr(response.usage, "input_tokens", 0) or 0,
        output_tokens=getattr(response.usage, "output_tokens", 0) or 0,
    )


class AnthropicNameProvider(LLMNameProvider):
    """LLM name provider over the Anthropic Messages API."""

    provider_name = "anthropic"
    _retry_base_delay: float = 1.0

    def __init__(self, api_key: str = "", *, base_url: str = "", **kwargs) -> None:
        if not api_key:
            raise ValueError(
                "Anthropic API key not found. Set it via:\n"
                "  export ANTHROPIC_API_KEY=sk-ant-..."
            )
        self._base_url = base_url
        super().__init__(api_key, **kwargs)

    @property
    def default_model(self) -> str:
        return "claude-haiku-4-5-20251001"

    def _get_async_client(self) -> anthropic.AsyncAnthropic:
        if self._cached_async_client is None:
            kwargs: dict = {"api_key": self._api_key}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._cached_async_client = anthropic.AsyncAnthropic(**kwargs)
        return self._cached_async_client

    async def _with_retry_async(self, fn, max_retries: int = _MAX_API_RETRIES):
        """Retry an async API call on transient errors with exponential backoff."""
        for attempt in range(max_retries + 1):
            try:
                return await fn()
            except _TRANSIENT_ANTHROPIC_ERRORS as e:
                if attempt == max_retries:
                    raise ProviderError(self.provider_name, e) from e
                wait = self._retry_base_delay * ((2**attempt) + random.random())
                logger.warning(
                    f"[Claude] Transient error (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{type(e).__name__}: {e}. Retrying in {wait:.1f}s"
                )
                await asyncio.sleep(wait)
            except anthropic.APIError as e:
                raise ProviderError(self.provider_name, e) from e

    async def _structured_call_async(
        self,
        prompt: str,
        response_schema: dict,
        schema_name: str,
    ) -> tuple[dict, TokenUsage]:
        client = self._get_async_client()
        tool = _make_structured_tool(schema_name, response_schema)
        params = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "tools": [tool],
            "tool_choice": {"type": "tool", "name": schema_name},
            "messages": [{"role": "user", "content": prompt}],
        }

        response = await self._with_retry_async(lambda: client.messages.create(**params))

        if self._log:
            log_request_response(
                function_name=schema_name,
                request=params,
                response=response,
                provider=self.provider_name,
            )

        return _extract_tool_input(response) or {}, _extract_usage(response)
