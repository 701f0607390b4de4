"""Display helpers for CLI output."""

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.models import AnalysisResult, CombinationResult, Gender, PartStatus
from .app import console

_GENDER_STYLE = {
    Gender.MALE: "[blue]male[/blue]",
    Gender.FEMALE: "[magenta]female[/magenta]",
    Gender.ANDROGYNOUS: "[cyan]androgynous[/cyan]",
    Gender.UNKNOWN: "[dim]unknown[/dim]",
}

_STATUS_STYLE = {
    PartStatus.OK: "[green]ok[/green]",
    PartStatus.NOT_FOUND: "[yellow]not found[/yellow]",
    PartStatus.PROVIDER_FAILED: "[red]lookup failed[/red]",
}


def _join(values: list[str]) -> str:
    return escape(", ".join(values)) if values else "[dim]-[/dim]"


def display_combination(result: CombinationResult) -> None:
    """Render one combination as a card."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()

    grid.add_row("Meaning", escape(result.meaning) or "[dim]-[/dim]")
    grid.add_row("Gender", _GENDER_STYLE[result.gender])
    grid.add_row("Loved in", _join(result.cultural_associations.positive))
    if result.cultural_associations.negative:
        grid.add_row("Awkward in", _join(result.cultural_associations.negative))
    grid.add_row("Nicknames", _join(result.nicknames.good))
    if result.nicknames.bad:
        grid.add_row("Teasing risk", f"[red]{escape(', '.join(result.nicknames.bad))}[/red]")
    grid.add_row("Variations", _join(result.variations))

    middle = result.parts.get("middle")
    if middle is not None and middle.meaning:
        grid.add_row("Middle meaning", escape(middle.meaning))

    statuses = "  ".join(
        f"{role}: {_STATUS_STYLE[status]}" for role, status in result.part_status.items()
    )
    grid.add_row("Lookup", statuses)

    border = "red" if result.degraded else "green"
    console.print(Panel(grid, title=f"[bold]{result.full_name}[/bold]", border_style=border))


def display_summary_table(result: AnalysisResult) -> None:
    """Compact one-row-per-combination view."""
    table = Table(title="Combinations", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Gender")
    table.add_column("Meaning")
    table.add_column("Status")
    for combo in result.combinations:
        table.add_row(
            combo.full_name,
            _GENDER_STYLE[combo.gender],
            escape(combo.meaning) or "[dim]-[/dim]",
            _STATUS_STYLE[combo.status],
        )
    console.print(table)


def display_rejected(result: AnalysisResult) -> None:
    if not result.rejected:
        return
    console.print()
    console.print(f"[bold yellow]Rejected ({len(result.rejected)}):[/bold yellow]")
    for r in result.rejected:
        shown = r.part if r.part else "(blank)"
        console.print(f"  • {r.role} name [bold]{escape(shown)}[/bold] [dim]({r.reason})[/dim]")
