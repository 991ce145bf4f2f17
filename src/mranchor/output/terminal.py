"""Rich terminal reporter — feedback table with severity pills."""

from __future__ import annotations

from collections import Counter
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from mranchor.review.models import SEVERITY_ORDER, ResolutionKind, ReviewFeedback
from mranchor.review.prompt import PreparedReview
from mranchor.review.reconciler import ReviewView

_SEVERITY_STYLE = {
    "Critical": "bold white on red",
    "Warning": "bold black on yellow",
    "Suggestion": "bold black on bright_cyan",
    "Info": "bold white on blue",
}

_RESOLUTION_STYLE = {
    ResolutionKind.EXACT: "green",
    ResolutionKind.NEAREST: "yellow",
    ResolutionKind.FILE_LEVEL: "dim",
}


def _severity_pill(severity: str) -> Text:
    return Text(f" {severity.upper()} ", style=_SEVERITY_STYLE.get(severity, ""))


def _anchor(item: ReviewFeedback) -> Text:
    if item.position is None or item.annotation:
        label = "file" if item.file_path else "general"
    elif item.position.new_line is not None:
        label = f"+{item.position.new_line}"
    else:
        label = f"-{item.position.old_line}"
    return Text(label, style=_RESOLUTION_STYLE.get(item.resolution, ""))


def render(view: ReviewView, *, show_summary: bool = True, console: Optional[Console] = None) -> None:
    """Print resolved feedback to the terminal using Rich."""
    console = console or Console(stderr=True)
    items = view.items()

    if not items:
        console.print()
        console.print("[bold green]No review comments.[/bold green]")
        return

    console.print()
    table = Table(
        title="Review Feedback",
        show_lines=True,
        title_style="bold",
        border_style="dim",
    )
    table.add_column("Severity", justify="center", width=12)
    table.add_column("File", style="magenta")
    table.add_column("Line", justify="right")
    table.add_column("Anchor", justify="center")
    table.add_column("Title", style="cyan", min_width=20)
    table.add_column("Status", justify="center")

    for item in items:
        title = item.title if not item.annotation else f"{item.title}\n[dim]{item.annotation}[/dim]"
        table.add_row(
            _severity_pill(item.severity.value),
            item.file_path or "-",
            str(item.line_number) if item.line_number > 0 else "-",
            _anchor(item),
            title,
            item.status.value,
        )

    console.print(table)

    if show_summary:
        _print_summary(console, view)


def _print_summary(console: Console, view: ReviewView) -> None:
    items = view.items()
    inline = sum(1 for i in items if i.position is not None and not i.annotation)
    console.print()
    console.print(f"[dim]Comments:[/dim]      {len(items)}")
    console.print(f"[dim]Inline:[/dim]        {inline}")
    console.print(f"[dim]File-level:[/dim]    {len(items) - inline - len(view.general)}")
    console.print(f"[dim]General:[/dim]       {len(view.general)}")
    console.print(f"[dim]Pending:[/dim]       {len(view.navigation)}")
    counts = Counter(item.severity for item in items)
    for severity in sorted(counts, key=SEVERITY_ORDER.get):
        console.print(f"  {severity.value}: {counts[severity]}")


def render_prepared(prepared: PreparedReview, *, console: Optional[Console] = None) -> None:
    """Summarise prompt preparation."""
    console = console or Console(stderr=True)
    console.print(f"[dim]Files parsed:[/dim]  {len(prepared.parsed_diffs)}")
    console.print(f"[dim]Full content:[/dim]  {len(prepared.full_content_files)}")
    for entry in prepared.skipped:
        console.print(f"[dim]Skipped:[/dim]       {entry}")
    console.print(f"[dim]Prompt size:[/dim]   {len(prepared.prompt)} chars")
    console.print(f"[dim]Duration:[/dim]      {prepared.duration_ms:.0f}ms")
