"""OpenAI-compatible LLM name provider.

Works with OpenAI itself and any endpoint implementing the Chat Completions
API (OpenRouter, custom gateways). Structured output uses the
`json_schema` response format.
"""

import asyncio
import json
import logging
import random

import openai
from openai import AsyncOpenAI

from ..errors import ProviderError
from .llm import LLMNameProvider, TokenUsage
from .debug_log import log_request_response

_TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.InternalServerError,
    openai.RateLimitError,
)
_MAX_API_RETRIES = 2

logger = logging.getLogger(__name__)


class OpenAICompatNameProvider(LLMNameProvider):
    """LLM name provider over the OpenAI Chat Completions API."""

    _retry_base_delay: float = 1.0

    def __init__(
        self,
        api_key: str = "",
        *,
        model: str = "",
        base_url: str = "",
        provider_label: str = "openai",
        default_model: str = "gpt-5-mini",
        rate_tier: int | None = None,
        log: bool = False,
        max_tokens: int = 1024,
    ) -> None:
        self.provider_name = provider_label
        self._default_model = default_model
        self._base_url = base_url
        super().__init__(
            api_key, model=model, rate_tier=rate_tier, log=log, max_tokens=max_tokens
        )

    @property
    def default_model(self) -> str:
        return self._default_model

    def _get_async_client(self) -> AsyncOpenAI:
        if self._cached_async_client is None:
            kwargs: dict = {"api_key": self._api_key}
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._cached_async_client = AsyncOpenAI(**kwargs)
        return self._cached_async_client

    def _build_params(self, prompt: str, schema: dict, schema_name: str) -> dict:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                },
            },
            "max_completion_tokens": self._max_tokens,
        }

    @staticmethod
    def _extract_text(response) -> str | None:
        if response.choices:
            content = response.choices[0].message.content
            if content:
                return content
        return None

    async def _with_retry_async(self, fn, max_retries: int = _MAX_API_RETRIES):
        """Async retry on transient errors."""
        for attempt in range(max_retries + 1):
            try:
                return await fn()
            except _TRANSIENT_ERRORS as e:
                if attempt == max_retries:
                    raise ProviderError(self.provider_name, e) from e
                wait = self._retry_base_delay * ((2**attempt) + random.random())
                logger.warning(
                    f"[{self.provider_name}] Transient error "
                    f"({attempt + 1}/{max_retries + 1}): "
                    f"{type(e).__name__}: {e}. Retrying in {wait:.1f}s"
                )
                await asyncio.sleep(wait)
            except openai.APIError as e:
                raise ProviderError(self.provider_name, e) from e

    async def _structured_call_async(
        self,
        prompt: str,
        response_schema: dict,
        schema_name: str,
    ) -> tuple[dict, TokenUsage]:
        client = self._get_async_client()
        params = self._build_params(prompt, response_schema, schema_name)

        response = await self._with_retry_async(
            lambda: client.chat.completions.create(**params)
        )

        raw_text = self._extract_text(response)
        try:
            structured_data = json.loads(raw_text) if raw_text else {}
        except json.JSONDecodeError as e:
            raise ProviderError(self.provider_name, "model returned invalid JSON") from e

        usage = TokenUsage()
        if getattr(response, "usage", None) is not None:
            usage = TokenUsage(
                input_tokens=getattr(response.usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(response.usage, "completion_tokens", 0) or 0,
            )

        if self._log:
            log_request_response(
                function_name=schema_name,
                request=params,
                response=response,
                provider=self.provider_name,
            )

        return structured_data, usage
