"""Shared fixtures: isolate tests from the user's config file, env and .env."""

import pytest

from namesake import config as config_module

_ENV_VARS = [
    "NAMESAKE_MAX_COMBINATIONS",
    "NAMESAKE_MAX_CONCURRENT_LOOKUPS",
    "NAMESAKE_PROVIDER_TIMEOUT_MS",
    "NAMESAKE_PROVIDERS",
    "NAMESAKE_LLM_MODEL",
    "NAMESAKE_RATE_TIER",
    "BEHINDTHENAME_API_KEY",
    "GENDERIZE_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OPENROUTER_API_KEY",
]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    config_file = tmp_path / "config" / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_module, "_dotenv_loaded", True)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config_module.reset_config()
    yield config_file
    config_module.reset_config()
