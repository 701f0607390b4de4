"""Behind the Name provider.

Supplies gender, usages (reported as positive cultural associations) and
related names (reported as variations). Requires BEHINDTHENAME_API_KEY.

    GET https://www.behindthename.com/api/lookup.json?name=mary&key=KEY
    [{"name": "Mary", "gender": "f",
      "usages": [{"usage_code": "eng", "usage_full": "English", "usage_gender": "f"}]}]

    GET https://www.behindthename.com/api/related.json?name=mary&key=KEY
    {"names": ["Maria", "Marie", "Miriam"]}

Errors come back with HTTP 200 as {"error_code": 50, "error": "name could not be found"}.
"""

import logging

from ..errors import ProviderError
from ..models import CulturalAssociations, Gender, PartMetadata
from .base import HTTPNameProvider

logger = logging.getLogger(__name__)

BEHINDTHENAME_URL = "https://www.behindthename.com/api"

_NOT_FOUND_CODES = {50, 51}

_GENDER_CODES = {
    "m": {Gender.MALE},
    "f": {Gender.FEMALE},
    "mf": {Gender.MALE, Gender.FEMALE},
    "fm": {Gender.MALE, Gender.FEMALE},
}


def _is_not_found(data: dict) -> bool:
    if data.get("error_code") in _NOT_FOUND_CODES:
        return True
    return "not found" in str(data.get("error", "")).lower()


def parse_lookup(data: object, provider: str = "behindthename") -> PartMetadata | None:
    """Convert a lookup.json payload into PartMetadata (None when unknown)."""
    if isinstance(data, dict):
        if _is_not_found(data):
            return None
        raise ProviderError(provider, str(data.get("error") or "unexpected response shape"))
    if not isinstance(data, list):
        raise ProviderError(provider, "unexpected response shape")
    if not data:
        return None

    genders: set[Gender] = set()
    usages: list[str] = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        genders |= _GENDER_CODES.get(str(entry.get("gender", "")).lower(), set())
        for usage in entry.get("usages") or []:
            if isinstance(usage, dict) and usage.get("usage_full"):
                usages.append(usage["usage_full"])

    if genders == {Gender.MALE, Gender.FEMALE}:
        gender = Gender.ANDROGYNOUS
    elif len(genders) == 1:
        gender = next(iter(genders))
    else:
        gender = Gender.UNKNOWN

    return PartMetadata(
        gender=gender,
        cultural_associations=CulturalAssociations(positive=usages),
        sources=[provider],
    )


def parse_related(data: object, provider: str = "behindthename") -> list[str]:
    """Extract related names from a related.json payload."""
    if isinstance(data, dict) and "names" in data:
        return [str(n) for n in data.get("names") or []]
    if isinstance(data, dict) and _is_not_found(data):
        return []
    raise ProviderError(provider, "unexpected related.json shape")


class BehindTheNameProvider(HTTPNameProvider):
    """Gender, usages and related names from behindthename.com."""

    provider_name = "behindthename"
    base_url = BEHINDTHENAME_URL

    async def lookup(self, part: str) -> PartMetadata | None:
        params = {"name": part, "key": self._api_key, "exact": "yes"}
        status, data = await self._get_json("lookup.json", params)
        if status >= 400:
            raise ProviderError(self.provider_name, f"HTTP {status}")

        metadata = parse_lookup(data, self.provider_name)
        if metadata is None:
            logger.debug(f"[behindthename] {part!r} not found")
            return None

        # Related names are supplementary; a failure here keeps the lookup result
        try:
            _, related = await self._get_json(
                "related.json", {"name": part, "key": self._api_key}
            )
            variations = [
                n for n in parse_related(related, self.provider_name)
                if n.casefold() != part.casefold()
            ]
        except ProviderError as e:
            logger.warning(f"[behindthename] related names for {part!r} unavailable: {e}")
            variations = []

        if not variations:
            return metadata
        return PartMetadata.model_validate({**metadata.model_dump(), "variations": variations})
