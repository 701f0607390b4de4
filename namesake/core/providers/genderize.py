"""genderize.io provider.

Supplies only the gender signal. The free plan works without an API key
(100 names/day); a key raises the quota.

    GET https://api.genderize.io?name=peter
    {"count": 1094417, "name": "peter", "gender": "male", "probability": 1.0}
"""

import logging

from ..errors import ProviderError
from ..models import Gender, PartMetadata
from .base import HTTPNameProvider

logger = logging.getLogger(__name__)

GENDERIZE_URL = "https://api.genderize.io"

# Below this probability a name is treated as used for both genders
ANDROGYNOUS_THRESHOLD = 0.7


def parse_genderize(data: object, provider: str = "genderize") -> PartMetadata | None:
    """Convert a genderize.io payload into PartMetadata (None when unknown)."""
    if not isinstance(data, dict):
        raise ProviderError(provider, "unexpected response shape")
    if data.get("error"):
        raise ProviderError(provider, str(data["error"]))

    raw_gender = data.get("gender")
    if not raw_gender:
        return None

    try:
        probability = float(data.get("probability") or 0.0)
    except (TypeError, ValueError):
        raise ProviderError(provider, f"bad probability {data.get('probability')!r}")

    if probability < ANDROGYNOUS_THRESHOLD:
        gender = Gender.ANDROGYNOUS
    elif raw_gender == "male":
        gender = Gender.MALE
    elif raw_gender == "female":
        gender = Gender.FEMALE
    else:
        gender = Gender.UNKNOWN

    return PartMetadata(gender=gender, sources=[provider])


class GenderizeProvider(HTTPNameProvider):
    """Gender signal from genderize.io."""

    provider_name = "genderize"
    requires_api_key = False
    base_url = GENDERIZE_URL

    async def lookup(self, part: str) -> PartMetadata | None:
        params = {"name": part}
        if self._api_key:
            params["apikey"] = self._api_key

        status, data = await self._get_json("", params)
        if status >= 400:
            detail = data.get("error") if isinstance(data, dict) else None
            raise ProviderError(self.provider_name, f"HTTP {status}: {detail or 'error'}")

        metadata = parse_genderize(data, self.provider_name)
        logger.debug(
            f"[genderize] {part!r} -> "
            f"{metadata.gender.value if metadata else 'not found'}"
        )
        return metadata
