"""Default request-rate profiles per name-data provider and tier.

Profiles are structured as provider → tier → limits, where limits holds
`rpm` (requests per minute) and optionally `rpd` (requests per day).
Tier 1 is the free/lowest plan and the default.

Sources:
- genderize.io: https://genderize.io/documentation (free plan: 100 names/day)
- Behind the Name: https://www.behindthename.com/api/ (2 req/s, 4000/day)
- OpenAI / Anthropic: published tier-1 request limits
"""

RATE_LIMIT_PROFILES: dict[str, dict[int, dict[str, int]]] = {
    "genderize": {
        1: {"rpm": 60, "rpd": 100},
        2: {"rpm": 600, "rpd": 100_000},
        3: {"rpm": 1_200, "rpd": 1_000_000},
    },
    "behindthename": {
        1: {"rpm": 120, "rpd": 4_000},
    },
    "openai": {
        1: {"rpm": 500},
        2: {"rpm": 5_000},
        3: {"rpm": 5_000},
        4: {"rpm": 10_000},
    },
    "anthropic": {
        1: {"rpm": 50},
        2: {"rpm": 1_000},
        3: {"rpm": 2_000},
        4: {"rpm": 4_000},
    },
}
RATE_LIMIT_PROFILES["openrouter"] = {1: {"rpm": 200}, 2: {"rpm": 500}}

_UNKNOWN_PROVIDER_LIMITS = {"rpm": 60}


def get_limits(provider: str, tier: int | None = None) -> dict[str, int]:
    """Get rate limits for a provider/tier combination.

    Args:
        provider: Provider name ('genderize', 'behindthename', 'openai', ...)
        tier: Tier number (None = Tier 1)

    Returns:
        Dict with rpm and, where the provider enforces one, rpd
    """
    effective_tier = tier if tier and tier >= 1 else 1

    provider_key = provider.lower()
    if provider_key not in RATE_LIMIT_PROFILES:
        # Unknown provider: conservative defaults
        return dict(_UNKNOWN_PROVIDER_LIMITS)

    profiles = RATE_LIMIT_PROFILES[provider_key]
    limits = profiles.get(effective_tier, profiles[1])
    return dict(limits)
