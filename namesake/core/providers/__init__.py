"""Name-data provider registry and factory.

Provides:
- get_provider(): Create a provider instance from a name
  ("genderize", "behindthename", or "llm", which resolves through
  providers.llm_model to an LLM backend)
- build_gateway(): Build a ProviderGateway from the enabled providers
- available_providers(): Names accepted by get_provider()
"""

import importlib
import logging

from .base import HTTPNameProvider, NameProvider
from ...config import (
    NamesakeConfig,
    get_config,
    get_api_key_for_provider,
    parse_model_string,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Provider Registry
# =============================================================================

# Each entry: (module, class_name, default_kwargs)
# Lazy-imported so the LLM SDKs only load when the LLM provider is enabled.
_DATA_REGISTRY: dict[str, dict] = {
    "genderize": {
        "module": ".genderize",
        "class": "GenderizeProvider",
    },
    "behindthename": {
        "module": ".behindthename",
        "class": "BehindTheNameProvider",
    },
}

_LLM_REGISTRY: dict[str, dict] = {
    "openai": {
        "module": ".openai_compat",
        "class": "OpenAICompatNameProvider",
        "kwargs": {"provider_label": "openai", "default_model": "gpt-5-mini"},
    },
    "openrouter": {
        "module": ".openai_compat",
        "class": "OpenAICompatNameProvider",
        "kwargs": {
            "base_url": "https://openrouter.ai/api/v1",
            "provider_label": "openrouter",
            "default_model": "openai/gpt-5-mini",
        },
    },
    "anthropic": {
        "module": ".anthropic",
        "class": "AnthropicNameProvider",
    },
}

LLM_PROVIDER = "llm"


def available_providers() -> list[str]:
    return sorted([*_DATA_REGISTRY, LLM_PROVIDER])


def llm_backends(config: NamesakeConfig | None = None) -> list[str]:
    config = config or get_config()
    return sorted({*_LLM_REGISTRY, *config.custom})


def _instantiate(entry: dict, **kwargs) -> NameProvider:
    module = importlib.import_module(entry["module"], package=__package__)
    cls = getattr(module, entry["class"])
    merged = dict(entry.get("kwargs", {}))
    merged.update(kwargs)
    return cls(**merged)


def _get_llm_provider(config: NamesakeConfig, log: bool) -> NameProvider:
    backend, model = parse_model_string(config.providers.llm_model)
    api_key = get_api_key_for_provider(backend, config.custom)
    common = {"api_key": api_key, "model": model, "rate_tier": config.providers.rate_tier, "log": log}

    # Check custom providers first
    if backend in config.custom:
        from .openai_compat import OpenAICompatNameProvider

        return OpenAICompatNameProvider(
            base_url=config.custom[backend].base_url,
            provider_label=backend,
            **common,
        )

    if backend not in _LLM_REGISTRY:
        raise ValueError(
            f"Unknown LLM backend: {backend!r}. "
            f"Available: {', '.join(llm_backends(config))}"
        )
    return _instantiate(_LLM_REGISTRY[backend], **common)


def get_provider(
    provider_name: str,
    config: NamesakeConfig | None = None,
    timeout: float | None = None,
) -> NameProvider:
    """Create a provider instance by name.

    Args:
        provider_name: "genderize", "behindthename" or "llm"
        config: Optional config (defaults to the global config)
        timeout: HTTP timeout in seconds for data providers

    Returns:
        NameProvider instance

    Raises:
        ValueError: If the provider is unknown or its API key is missing
    """
    config = config or get_config()
    log = config.providers.debug_logs

    if provider_name == LLM_PROVIDER:
        return _get_llm_provider(config, log)

    if provider_name not in _DATA_REGISTRY:
        raise ValueError(
            f"Unknown name provider: {provider_name!r}. "
            f"Available: {', '.join(available_providers())}"
        )

    if timeout is None:
        timeout = config.analysis.provider_timeout_ms / 1000.0
    return _instantiate(
        _DATA_REGISTRY[provider_name],
        api_key=get_api_key_for_provider(provider_name, config.custom),
        rate_tier=config.providers.rate_tier,
        log=log,
        timeout=timeout,
    )


def build_gateway(
    config: NamesakeConfig | None = None,
    provider_names: list[str] | None = None,
):
    """Build a ProviderGateway from the enabled providers.

    Providers that cannot be created (typically a missing API key) are
    skipped with a warning.

    Raises:
        ValueError: If no provider could be created
    """
    from ..gateway import ProviderGateway

    config = config or get_config()
    names = provider_names or config.providers.enabled

    providers: list[NameProvider] = []
    skipped: list[str] = []
    for name in names:
        try:
            providers.append(get_provider(name, config))
        except ValueError as e:
            logger.warning(f"[GATEWAY] Skipping provider {name!r}: {e}")
            skipped.append(name)

    if not providers:
        raise ValueError(
            "No name-data providers available"
            + (f" (skipped: {', '.join(skipped)})" if skipped else "")
            + ". Check API keys with `namesake providers`."
        )

    return ProviderGateway(providers)


__all__ = [
    "NameProvider",
    "HTTPNameProvider",
    "available_providers",
    "llm_backends",
    "get_provider",
    "build_gateway",
]
