"""Configuration management for Namesake.

Sections:
- analysis: combination cap, lookup concurrency, per-lookup timeout
- providers: which name-data providers are enabled, and the LLM model string
- custom: extra OpenAI-compatible endpoints usable as the LLM provider

Model strings use "provider/model" format (e.g., "openai/gpt-5-mini").

Config resolution order (highest priority first):
1. Programmatic (NamesakeConfig constructed in code)
2. Environment variables (NAMESAKE_MAX_COMBINATIONS, NAMESAKE_PROVIDERS, etc.)
3. Config file (~/.config/namesake/config.json, managed by `namesake config`)
4. Hardcoded defaults

API keys are ALWAYS from env vars (or a .env file), never stored in config file.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "namesake"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_PROVIDERS = ["behindthename", "genderize", "llm"]


# =============================================================================
# Model string parsing
# =============================================================================


def parse_model_string(model_string: str) -> tuple[str, str]:
    """Parse a "provider/model" string into (provider, model) tuple.

    Examples:
        "openai/gpt-5-mini" → ("openai", "gpt-5-mini")
        "openrouter/anthropic/claude-haiku-4.5" → ("openrouter", "anthropic/claude-haiku-4.5")

    Raises:
        ValueError: If the string doesn't contain a '/' separator.
    """
    if "/" not in model_string:
        raise ValueError(
            f"Invalid model string: {model_string!r}. "
            f"Expected format: 'provider/model' (e.g., 'openai/gpt-5-mini')"
        )
    provider, _, model = model_string.partition("/")
    if not provider or not model:
        raise ValueError(
            f"Invalid model string: {model_string!r}. "
            f"Both provider and model must be non-empty."
        )
    return provider, model


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class AnalysisConfig:
    """Defaults for AnalysisOptions."""

    max_combinations: int = 100
    max_concurrent_lookups: int = 5
    provider_timeout_ms: int = 10_000


@dataclass
class ProvidersConfig:
    """Name-data provider selection.

    `enabled` is also the merge priority order: earlier providers win
    the single-valued fields (meaning, gender).
    """

    enabled: list[str] = field(default_factory=lambda: list(DEFAULT_PROVIDERS))
    llm_model: str = "openai/gpt-5-mini"
    rate_tier: int | None = None
    debug_logs: bool = False


@dataclass
class CustomProviderConfig:
    """Configuration for a custom OpenAI-compatible endpoint used as the LLM provider."""

    base_url: str = ""
    api_key_env: str = ""


@dataclass
class NamesakeConfig:
    """Top-level namesake configuration.

    Examples:
        # Package use: no files needed
        config = NamesakeConfig(analysis=AnalysisConfig(max_combinations=50))

        # CLI use: loads from ~/.config/namesake/config.json
        config = NamesakeConfig.load()
    """

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    custom: dict[str, CustomProviderConfig] = field(default_factory=dict)

    @classmethod
    def load(cls) -> "NamesakeConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: Load from config file if it exists
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: Env var overrides
        for env_name, attr in (
            ("NAMESAKE_MAX_COMBINATIONS", "max_combinations"),
            ("NAMESAKE_MAX_CONCURRENT_LOOKUPS", "max_concurrent_lookups"),
            ("NAMESAKE_PROVIDER_TIMEOUT_MS", "provider_timeout_ms"),
        ):
            if val := os.environ.get(env_name):
                try:
                    setattr(config.analysis, attr, int(val))
                except ValueError:
                    logger.warning("Invalid %s=%r, ignoring", env_name, val)
        if val := os.environ.get("NAMESAKE_PROVIDERS"):
            config.providers.enabled = [p.strip() for p in val.split(",") if p.strip()]
        if val := os.environ.get("NAMESAKE_LLM_MODEL"):
            config.providers.llm_model = val
        if val := os.environ.get("NAMESAKE_RATE_TIER"):
            try:
                config.providers.rate_tier = int(val)
            except ValueError:
                logger.warning("Invalid NAMESAKE_RATE_TIER=%r, ignoring", val)

        return config

    def save(self) -> None:
        """Save config to ~/.config/namesake/config.json."""
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        if not self.custom:
            data.pop("custom", None)
        with open(CONFIG_FILE, "w") as f:
            json.dump(data, f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "analysis": asdict(self.analysis),
            "providers": asdict(self.providers),
            "custom": {name: asdict(cfg) for name, cfg in self.custom.items()},
        }


# =============================================================================
# Config dict application
# =============================================================================

_INT_KEYS = {"max_combinations", "max_concurrent_lookups", "provider_timeout_ms"}


def _apply_dict(config: NamesakeConfig, data: dict) -> None:
    """Apply a dict of values onto a NamesakeConfig."""
    if isinstance(data.get("analysis"), dict):
        for k, v in data["analysis"].items():
            if not hasattr(config.analysis, k):
                continue
            if k in _INT_KEYS:
                try:
                    v = int(v)
                except (TypeError, ValueError):
                    logger.warning("Invalid analysis.%s=%r in config file, ignoring", k, v)
                    continue
            setattr(config.analysis, k, v)
    if isinstance(data.get("providers"), dict):
        for k, v in data["providers"].items():
            if not hasattr(config.providers, k):
                continue
            if k == "enabled" and isinstance(v, str):
                v = [p.strip() for p in v.split(",") if p.strip()]
            setattr(config.providers, k, v)
    if isinstance(data.get("custom"), dict):
        for name, provider_data in data["custom"].items():
            if isinstance(provider_data, dict):
                config.custom[name] = CustomProviderConfig(
                    base_url=provider_data.get("base_url", ""),
                    api_key_env=provider_data.get("api_key_env", ""),
                )


# =============================================================================
# API key resolution
# =============================================================================

_dotenv_loaded = False

# Providers whose env var does not follow the {PROVIDER}_API_KEY convention
_KEY_ENV_OVERRIDES = {
    "behindthename": "BEHINDTHENAME_API_KEY",
    "genderize": "GENDERIZE_API_KEY",
}


def _ensure_dotenv() -> None:
    """Load .env file into os.environ if not already loaded."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        _dotenv_loaded = True
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)


def get_api_key_for_provider(
    provider_name: str,
    custom_providers: dict[str, CustomProviderConfig] | None = None,
) -> str:
    """Get API key for a provider.

    Resolution order:
    1. Custom provider api_key_env override
    2. Known overrides (BEHINDTHENAME_API_KEY, GENDERIZE_API_KEY)
    3. Convention: {PROVIDER_UPPER}_API_KEY

    Returns empty string if not found.
    """
    _ensure_dotenv()

    if custom_providers and provider_name in custom_providers:
        custom = custom_providers[provider_name]
        if custom.api_key_env:
            return os.environ.get(custom.api_key_env, "")

    env_var = _KEY_ENV_OVERRIDES.get(provider_name, f"{provider_name.upper()}_API_KEY")
    return os.environ.get(env_var, "")


def api_key_env_var(provider_name: str) -> str:
    """Name of the env var holding a built-in provider's API key."""
    return _KEY_ENV_OVERRIDES.get(provider_name, f"{provider_name.upper()}_API_KEY")


# =============================================================================
# Global config singleton
# =============================================================================

_config: NamesakeConfig | None = None


def get_config() -> NamesakeConfig:
    """Get the global NamesakeConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = NamesakeConfig.load()
    return _config


def configure(config: NamesakeConfig) -> None:
    """Set the global NamesakeConfig programmatically.

    Use this when namesake is used as a package:
        from namesake.config import configure, NamesakeConfig, ProvidersConfig
        configure(NamesakeConfig(providers=ProvidersConfig(enabled=["genderize"])))
    """
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
