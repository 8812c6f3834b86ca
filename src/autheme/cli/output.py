"""Rich output formatting helpers for the autheme CLI.

Provides consistent, severity-colored terminal output for trust scores and
live tool-call lines.

Severity Color Mapping:
    critical = bold red, warning = yellow, info = cyan
Score Color Mapping:
    >= 80 green, >= 50 yellow, otherwise red
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from autheme.core.runs.models import ActionRecord
from autheme.core.trust import Severity, TrustScore

_SEVERITY_STYLES: dict[Severity, str] = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}

GOOD_SCORE: int = 80
FAIR_SCORE: int = 50

console = Console()


def severity_style(severity: Severity) -> str:
    """Return the Rich style string for a given severity."""
    return _SEVERITY_STYLES.get(severity, "white")


def score_style(score: int) -> str:
    """Return the Rich style string for a 0-100 score."""
    if score >= GOOD_SCORE:
        return "bold green"
    if score >= FAIR_SCORE:
        return "bold yellow"
    return "bold red"


def print_tool_call(action: ActionRecord, allowed_tools: Sequence[str]) -> None:
    """Print one live tool-call line, tagging errors and scope violations."""
    line = Text("  [authe.me] ", style="dim")
    if action.error:
        line.append("x ", style="red")
    else:
        line.append("v ", style="green")
    line.append(action.tool_name or "unknown", style="bold")
    line.append(f" ({action.duration_ms:g}ms)", style="dim")
    if not action.scope_match:
        line.append(" SCOPE VIOLATION ", style="bold white on red")
    if action.error:
        line.append(f" error: {action.error}", style="red")
    console.print(line)
    if not action.scope_match:
        console.print(
            Text(
                f'             Tool "{action.tool_name}" not in allowed list '
                f"[{', '.join(allowed_tools)}]",
                style="red",
            )
        )


def print_trust_score(score: TrustScore, title: str = "Trust Score") -> None:
    """Print a formatted trust score breakdown.

    Args:
        score: Computed trust score for a run.
        title: Panel title, e.g. the scenario or session name.
    """
    header = Text.assemble(
        ("Overall: ", "bold"), (str(score.overall), score_style(score.overall)),
        ("/100", "dim"),
    )
    console.print(Panel(header, title=escape(title)))

    dim_table = Table(title="Dimensions", show_header=True)
    dim_table.add_column("Dimension", style="bold")
    dim_table.add_column("Score", justify="right")
    for name, value in score.dimensions.as_dict().items():
        dim_table.add_row(
            name.replace("_", " ").capitalize(),
            Text(str(value), style=score_style(value)),
        )
    console.print(dim_table)

    if score.flags:
        flag_table = Table(title="Flags", show_header=True)
        flag_table.add_column("Severity", justify="center")
        flag_table.add_column("Dimension")
        flag_table.add_column("Message")
        flag_table.add_column("Action", style="dim")
        for flag in score.flags:
            flag_table.add_row(
                Text(flag.severity.value.upper(), style=severity_style(flag.severity)),
                flag.dimension.value,
                Text(flag.message),
                Text(flag.action or "-"),
            )
        console.print(flag_table)
    else:
        console.print("[green]No flags. Run stayed in scope and within budget.[/green]")

