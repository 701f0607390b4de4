"""Provider Gateway: one lookup capability over several name-data providers.

lookup(part) queries every provider concurrently and merges their partial
answers. The aggregator sees a single contract:

    await gateway.lookup(part) -> PartMetadata | None   (None = not found)
    raises ProviderError when no provider could answer
"""

import asyncio
import logging
from typing import Sequence

from .errors import ProviderError
from .models import CulturalAssociations, Gender, Nicknames, PartMetadata
from .providers.base import NameProvider

logger = logging.getLogger(__name__)


def merge_part_metadata(answers: Sequence[PartMetadata]) -> PartMetadata:
    """Merge provider answers for the same part, in priority order.

    Single-valued fields take the first informative value (non-empty
    meaning, non-unknown gender); set fields are unioned.
    """
    meaning = next((a.meaning for a in answers if a.meaning), "")
    gender = next((a.gender for a in answers if a.gender != Gender.UNKNOWN), Gender.UNKNOWN)

    cultures = CulturalAssociations()
    nicknames = Nicknames()
    variations: list[str] = []
    sources: list[str] = []
    for answer in answers:
        cultures = cultures.union(answer.cultural_associations)
        nicknames = nicknames.union(answer.nicknames)
        variations.extend(answer.variations)
        sources.extend(s for s in answer.sources if s not in sources)

    return PartMetadata(
        meaning=meaning,
        gender=gender,
        cultural_associations=cultures,
        nicknames=nicknames,
        variations=variations,
        sources=sources,
    )


class ProviderGateway:
    """Fans a part lookup out to all providers and merges the results."""

    def __init__(self, providers: Sequence[NameProvider]):
        if not providers:
            raise ValueError("ProviderGateway needs at least one provider")
        self.providers = list(providers)

    @property
    def provider_names(self) -> list[str]:
        return [p.provider_name for p in self.providers]

    async def _lookup_one(
        self, provider: NameProvider, part: str
    ) -> tuple[PartMetadata | None, ProviderError | None]:
        try:
            return await provider.lookup(part), None
        except ProviderError as e:
            return None, e
        except Exception as e:
            return None, ProviderError(provider.provider_name, e)

    async def lookup(self, part: str) -> PartMetadata | None:
        results = await asyncio.gather(
            *(self._lookup_one(p, part) for p in self.providers)
        )

        answers: list[PartMetadata] = []
        errors: list[ProviderError] = []
        answered = 0
        for metadata, error in results:
            if error is not None:
                errors.append(error)
                continue
            answered += 1
            if metadata is not None:
                answers.append(metadata)

        if answered == 0:
            failed = ", ".join(e.provider for e in errors)
            raise ProviderError(failed, errors[0].cause if errors else None)

        for error in errors:
            logger.warning(f"[GATEWAY] {part!r}: {error} (continuing with other providers)")

        if not answers:
            return None
        return merge_part_metadata(answers)

    async def close_async(self) -> None:
        """Close every provider's HTTP client."""
        for provider in self.providers:
            await provider.close_async()
