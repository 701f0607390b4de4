"""Analyze command: expand name parts and annotate every combination."""

import json
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console

from ...config import get_config
from ...core.aggregator import analyze_sync
from ...core.errors import AllProvidersUnavailable, InvalidInput, TooManyCombinations
from ...core.models import AnalysisOptions
from ...core.providers import build_gateway
from ..app import app, console, get_json_mode
from ..display import display_combination, display_rejected, display_summary_table
from ..utils import ExitCode, Output, setup_logging


def load_names_file(path: Path) -> tuple[list[str], list[str], str]:
    """Read first/middle/last from a YAML or JSON file.

    `first` and `middle` may be a list or a single string.

    Raises:
        ValueError: If the file is malformed or `first`/`last` are missing
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping with first/middle/last keys")

    def _as_list(value) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(v) for v in value]
        raise ValueError(f"{path}: expected a list of names, got {type(value).__name__}")

    first = _as_list(data.get("first"))
    middle = _as_list(data.get("middle"))
    last = data.get("last")
    if not first or not last:
        raise ValueError(f"{path}: 'first' and 'last' are required")
    return first, middle, str(last)


@app.command("analyze")
def analyze_command(
    first: list[str] = typer.Option(
        None, "--first", "-f", help="Candidate first name (repeatable)"
    ),
    middle: list[str] = typer.Option(
        None, "--middle", "-m", help="Candidate middle name (repeatable)"
    ),
    last: str | None = typer.Option(None, "--last", "-l", help="Family name"),
    input_file: Path | None = typer.Option(
        None,
        "--input",
        "-i",
        help="YAML/JSON file with first, middle, last keys (merged with flags)",
    ),
    max_combinations: int | None = typer.Option(
        None, "--max-combinations", min=1, help="Refuse larger expansions"
    ),
    concurrency: int | None = typer.Option(
        None, "--concurrency", "-c", min=1, help="Max lookups in flight"
    ),
    timeout_ms: int | None = typer.Option(
        None, "--timeout-ms", min=1, help="Per-lookup timeout in milliseconds"
    ),
    provider: list[str] = typer.Option(
        None, "--provider", "-p", help="Provider to use (repeatable, default from config)"
    ),
    table: bool = typer.Option(False, "--table", help="Compact table instead of cards"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show lookup progress"),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
):
    """Expand first × middle × last and annotate each full name.

    Examples:
        namesake analyze -f Ana -f Bob -m Rose -l Lee
        namesake analyze --input names.yaml --table
        namesake --json analyze -f Sam -l Kim -p genderize
    """
    json_mode = get_json_mode()
    out = Output(console=console, json_mode=json_mode)
    # Keep stdout clean for JSON consumers
    setup_logging(Console(stderr=True) if json_mode else console, verbose, debug)

    first_names = list(first or [])
    middle_names = list(middle or [])
    last_name = last

    if input_file is not None:
        if not input_file.exists():
            out.error(f"File not found: {input_file}", exit_code=ExitCode.FILE_NOT_FOUND)
            raise typer.Exit(out.finish())
        try:
            file_first, file_middle, file_last = load_names_file(input_file)
        except (ValueError, yaml.YAMLError) as e:
            out.error(str(e), category="input")
            raise typer.Exit(out.finish())
        first_names = file_first + first_names
        middle_names = file_middle + middle_names
        last_name = last_name or file_last

    if not last_name:
        out.error("A last name is required", suggestion="Pass --last or set 'last' in --input")
        raise typer.Exit(out.finish())

    config = get_config()
    try:
        options = AnalysisOptions.from_config(
            config,
            max_combinations=max_combinations,
            max_concurrent_lookups=concurrency,
            provider_timeout_ms=timeout_ms,
        )
    except ValidationError as e:
        err = e.errors()[0]
        out.error(
            f"Invalid option {err['loc'][0]}: {err['msg']}",
            category="options",
            suggestion="Check `namesake config show` and NAMESAKE_* env vars",
        )
        raise typer.Exit(out.finish())

    try:
        gateway = build_gateway(config, provider_names=provider or None)
    except ValueError as e:
        out.error(
            str(e),
            category="providers",
            exit_code=ExitCode.PROVIDERS_UNAVAILABLE,
        )
        raise typer.Exit(out.finish())

    try:
        if json_mode:
            result = analyze_sync(
                first_names, middle_names, last_name, options, gateway=gateway
            )
        else:
            with console.status(
                f"[cyan]Looking up names via {', '.join(gateway.provider_names)}...[/cyan]"
            ):
                result = analyze_sync(
                    first_names, middle_names, last_name, options, gateway=gateway
                )
    except InvalidInput as e:
        out.error(str(e), category="input", exit_code=ExitCode.VALIDATION_ERROR)
        raise typer.Exit(out.finish())
    except TooManyCombinations as e:
        out.error(
            str(e),
            category="too_many_combinations",
            suggestion=f"Raise the cap with --max-combinations {e.count}",
            exit_code=ExitCode.TOO_MANY_COMBINATIONS,
        )
        raise typer.Exit(out.finish())
    except AllProvidersUnavailable as e:
        out.error(
            str(e),
            category="providers",
            suggestion="Check connectivity and API keys with `namesake providers`",
            exit_code=ExitCode.PROVIDERS_UNAVAILABLE,
        )
        raise typer.Exit(out.finish())
    except KeyboardInterrupt:
        out.error("Cancelled", exit_code=ExitCode.USER_CANCELLED)
        raise typer.Exit(out.finish())

    if json_mode:
        wire = result.to_wire()
        for key in ("combinations", "rejected", "stats"):
            out.set_data(key, wire[key])
        if result.degraded:
            out.set_status("degraded")
        raise typer.Exit(out.finish())

    out.header(f"{len(result.combinations)} COMBINATIONS")
    if table:
        display_summary_table(result)
    else:
        for combo in result.combinations:
            display_combination(combo)

    display_rejected(result)

    out.blank()
    if result.failed_parts:
        out.warning(
            f"Lookups failed for: {', '.join(result.failed_parts)}",
            suggestion="Those names are shown with empty metadata",
        )
    if result.not_found_parts:
        out.text(f"[dim]No provider knew: {', '.join(result.not_found_parts)}[/dim]")
    out.success(f"{result.lookup_count} lookups for {len(result.combinations)} combinations")
    raise typer.Exit(out.finish())
