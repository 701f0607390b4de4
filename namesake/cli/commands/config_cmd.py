"""Config command for viewing and managing namesake configuration."""

import typer

from ..app import app, console
from ..utils import mask_key
from ...config import (
    get_config,
    reset_config,
    CONFIG_FILE,
    api_key_env_var,
    get_api_key_for_provider,
)


VALID_KEYS = {
    "analysis.max_combinations",
    "analysis.max_concurrent_lookups",
    "analysis.provider_timeout_ms",
    "providers.enabled",
    "providers.llm_model",
    "providers.rate_tier",
    "providers.debug_logs",
}

INT_FIELDS = {
    "max_combinations",
    "max_concurrent_lookups",
    "provider_timeout_ms",
    "rate_tier",
}

BOOL_FIELDS = {"debug_logs"}

_KEYED_PROVIDERS = ["behindthename", "genderize", "openai", "anthropic", "openrouter"]


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. analysis.max_combinations, providers.llm_model)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify namesake configuration.

    Examples:
        namesake config show
        namesake config set analysis.max_combinations 200
        namesake config set providers.enabled genderize,llm
        namesake config set providers.llm_model anthropic/claude-haiku-4-5-20251001
        namesake config set custom.mygateway.base_url https://llm.example.com/v1
        namesake config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] namesake config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    console.print()
    console.print("[bold]Namesake Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Analysis[/bold cyan]")
    console.print(f"  max_combinations       = {config.analysis.max_combinations}")
    console.print(f"  max_concurrent_lookups = {config.analysis.max_concurrent_lookups}")
    console.print(f"  provider_timeout_ms    = {config.analysis.provider_timeout_ms}")

    console.print()
    console.print("[bold cyan]Providers[/bold cyan] (merge priority order)")
    console.print(f"  enabled    = {', '.join(config.providers.enabled)}")
    console.print(f"  llm_model  = {config.providers.llm_model}")
    console.print(
        f"  rate_tier  = {config.providers.rate_tier or '[dim](tier 1)[/dim]'}"
    )
    if config.providers.debug_logs:
        console.print("  debug_logs = true")

    if config.custom:
        console.print()
        console.print("[bold cyan]Custom LLM Endpoints[/bold cyan]")
        for name, provider_cfg in config.custom.items():
            console.print(f"  {name}:")
            console.print(f"    base_url    = {provider_cfg.base_url}")
            if provider_cfg.api_key_env:
                console.print(f"    api_key_env = {provider_cfg.api_key_env}")

    console.print()
    console.print("[bold cyan]API Keys[/bold cyan] (from env vars)")
    for provider in _KEYED_PROVIDERS:
        _show_key_status(provider, api_key_env_var(provider))

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"Config file: {CONFIG_FILE}")
    else:
        console.print(f"Config file: [dim]not created yet[/dim] ({CONFIG_FILE})")
    console.print()


def _show_key_status(provider: str, env_var_label: str):
    """Show whether an API key is configured."""
    key = get_api_key_for_provider(provider)
    if key:
        console.print(f"  {env_var_label}: [green]{mask_key(key)}[/green]")
    else:
        console.print(f"  {env_var_label}: [dim]not set[/dim]")


def _set_config(key: str, value: str):
    """Set a config value and save."""
    # Allow dynamic endpoint keys like custom.mygateway.base_url
    is_custom_key = key.startswith("custom.")
    if key not in VALID_KEYS and not is_custom_key:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print()
        console.print("Available keys:")
        for k in sorted(VALID_KEYS):
            console.print(f"  {k}")
        console.print("  custom.<name>.base_url")
        console.print("  custom.<name>.api_key_env")
        raise typer.Exit(1)

    # Load current config (or defaults if no file)
    config = get_config()

    if is_custom_key:
        parts = key.split(".", 2)
        if len(parts) != 3 or parts[2] not in ("base_url", "api_key_env"):
            console.print(
                f"[red]Invalid custom key:[/red] {key}\n"
                "Expected: custom.<name>.base_url or custom.<name>.api_key_env"
            )
            raise typer.Exit(1)
        endpoint_name = parts[1]
        field = parts[2]
        from ...config import CustomProviderConfig

        if endpoint_name not in config.custom:
            config.custom[endpoint_name] = CustomProviderConfig()
        setattr(config.custom[endpoint_name], field, value)
    else:
        zone, field_name = key.split(".", 1)
        target = config.analysis if zone == "analysis" else config.providers

        if field_name in INT_FIELDS:
            try:
                parsed = int(value)
            except ValueError:
                console.print(f"[red]Invalid integer value:[/red] {value}")
                raise typer.Exit(1)
            if parsed < 1:
                console.print(f"[red]Value must be at least 1:[/red] {value}")
                raise typer.Exit(1)
            setattr(target, field_name, parsed)
        elif field_name in BOOL_FIELDS:
            setattr(target, field_name, value.lower() in ("1", "true", "yes", "on"))
        elif field_name == "enabled":
            names = [p.strip() for p in value.split(",") if p.strip()]
            if not names:
                console.print("[red]At least one provider must be enabled[/red]")
                raise typer.Exit(1)
            target.enabled = names
        else:
            setattr(target, field_name, value)

    config.save()
    reset_config()  # Clear cached singleton so next get_config() reloads

    console.print(f"[green]✓[/green] Set {key} = {value}")
    console.print(f"  Saved to {CONFIG_FILE}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        reset_config()
        console.print("[green]✓[/green] Config reset to defaults")
        console.print(f"  Removed {CONFIG_FILE}")
    else:
        console.print("Config already at defaults (no config file exists)")
