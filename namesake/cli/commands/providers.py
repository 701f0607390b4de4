"""Providers command: which name-data providers are registered and usable."""

from ..app import app, console, get_json_mode
from ..utils import Output, mask_key
from ...config import (
    api_key_env_var,
    get_api_key_for_provider,
    get_config,
    parse_model_string,
)
from ...core.providers import LLM_PROVIDER, available_providers, llm_backends

# Providers that answer without a key (with lower rate limits)
_KEY_OPTIONAL = {"genderize"}


@app.command("providers")
def providers_command():
    """List name-data providers, whether they are enabled and their API key status."""
    out = Output(console=console, json_mode=get_json_mode())
    config = get_config()

    rows: list[list[str]] = []
    for name in available_providers():
        detail = ""
        key_name = name
        if name == LLM_PROVIDER:
            try:
                key_name, model = parse_model_string(config.providers.llm_model)
            except ValueError as e:
                out.warning(str(e), suggestion="namesake config set providers.llm_model openai/gpt-5-mini")
                rows.append([name, _enabled(name, config), "invalid model", ""])
                continue
            detail = f"{key_name}/{model}"

        key = get_api_key_for_provider(key_name, config.custom)
        if key:
            status = mask_key(key) if not out.json_mode else "set"
        elif name in _KEY_OPTIONAL:
            status = "optional"
        else:
            env = (
                config.custom[key_name].api_key_env
                if key_name in config.custom and config.custom[key_name].api_key_env
                else api_key_env_var(key_name)
            )
            status = f"missing ({env})"
        rows.append([name, _enabled(name, config), status, detail])

    out.table(
        "Providers",
        ["Provider", "Enabled", "API key", "Model"],
        rows,
        data_key="providers",
    )
    out.text(f"[dim]LLM backends: {', '.join(llm_backends(config))}[/dim]")
    return out.finish()


def _enabled(name: str, config) -> str:
    if name not in config.providers.enabled:
        return "no"
    return f"yes (#{config.providers.enabled.index(name) + 1})"
