"""LLM-backed name provider.

Asks a language model for the full metadata shape (meaning, gender,
cultural associations, nicknames, variations) using structured output.
Concrete subclasses wire up a specific SDK:
- openai_compat.OpenAICompatNameProvider (OpenAI, OpenRouter, custom endpoints)
- anthropic.AnthropicNameProvider (tool use)
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass

from ..errors import ProviderError
from ..models import CulturalAssociations, Gender, Nicknames, PartMetadata
from .base import NameProvider

logger = logging.getLogger(__name__)


@dataclass
class TokenUsage:
    """Token usage from LLM API calls."""

    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, other: "TokenUsage") -> None:
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens


def _string_list(description: str) -> dict:
    return {"type": "array", "items": {"type": "string"}, "description": description}


NAME_METADATA_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "known": {
            "type": "boolean",
            "description": "False if this is not a recognised given name",
        },
        "meaning": {"type": "string", "description": "Short etymology and meaning"},
        "gender": {
            "type": "string",
            "enum": [g.value for g in Gender],
        },
        "positive_cultures": _string_list("Cultures where the name is well received"),
        "negative_cultures": _string_list(
            "Cultures where the name has unfortunate connotations"
        ),
        "good_nicknames": _string_list("Common, pleasant nicknames"),
        "bad_nicknames": _string_list("Nicknames likely to be used for teasing"),
        "variations": _string_list("Spelling variants and equivalents in other languages"),
    },
    "required": [
        "known",
        "meaning",
        "gender",
        "positive_cultures",
        "negative_cultures",
        "good_nicknames",
        "bad_nicknames",
        "variations",
    ],
    "additionalProperties": False,
}

SCHEMA_NAME = "name_metadata"


def build_name_prompt(part: str) -> str:
    return (
        "You are an onomastics reference. Describe the given name below for "
        "parents choosing a baby name.\n\n"
        f"Name: {part}\n\n"
        "Report its meaning and origin in one or two sentences, whether it is "
        "used for boys, girls or both (androgynous), cultures where it is "
        "well received, cultures where it sounds odd or has negative "
        "connotations, pleasant nicknames, nicknames likely to be used for "
        "teasing, and common variations. Use empty lists when nothing applies. "
        "If this is not a recognised given name, set known to false."
    )


def parse_llm_metadata(data: object, provider: str) -> PartMetadata | None:
    """Convert a structured LLM response into PartMetadata (None when unknown)."""
    if not isinstance(data, dict) or not data:
        raise ProviderError(provider, "empty or malformed structured response")
    if not data.get("known", False):
        return None

    try:
        gender = Gender(data.get("gender", Gender.UNKNOWN.value))
    except ValueError:
        gender = Gender.UNKNOWN

    return PartMetadata(
        meaning=str(data.get("meaning") or ""),
        gender=gender,
        cultural_associations=CulturalAssociations(
            positive=data.get("positive_cultures") or [],
            negative=data.get("negative_cultures") or [],
        ),
        nicknames=Nicknames(
            good=data.get("good_nicknames") or [],
            bad=data.get("bad_nicknames") or [],
        ),
        variations=data.get("variations") or [],
        sources=[provider],
    )


class LLMNameProvider(NameProvider):
    """Base for LLM providers. Subclasses implement one structured async call."""

    provider_name = "llm"

    def __init__(
        self,
        api_key: str = "",
        *,
        model: str = "",
        rate_tier: int | None = None,
        log: bool = False,
        max_tokens: int = 1024,
    ) -> None:
        super().__init__(api_key, rate_tier=rate_tier, log=log)
        self._model = model or self.default_model
        self._max_tokens = max_tokens
        self.total_usage = TokenUsage()

    @property
    def default_model(self) -> str:
        return ""

    @property
    def model(self) -> str:
        return self._model

    async def close_async(self) -> None:
        # SDK clients expose an async close() rather than httpx's aclose()
        if self._cached_async_client is not None:
            await self._cached_async_client.close()
            self._cached_async_client = None

    @abstractmethod
    async def _structured_call_async(
        self,
        prompt: str,
        response_schema: dict,
        schema_name: str,
    ) -> tuple[dict, TokenUsage]:
        """Make one structured-output call and return (data, usage)."""
        ...

    async def lookup(self, part: str) -> PartMetadata | None:
        await self._acquire_rate_limit()
        data, usage = await self._structured_call_async(
            build_name_prompt(part), NAME_METADATA_SCHEMA, SCHEMA_NAME
        )
        self.total_usage.add(usage)
        logger.debug(
            f"[{self.provider_name}] {part!r} model={self._model} "
            f"tokens={usage.input_tokens}/{usage.output_tokens}"
        )
        return parse_llm_metadata(data, self.provider_name)
