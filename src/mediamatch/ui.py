"""Rich console output for the mediamatch CLI."""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.theme import Theme

from mediamatch.models import MatchResult, MatchStatus, ParsedMetadata, RunSummary

MEDIAMATCH_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "title": "bold white",
        "dim": "dim",
        "path": "cyan",
        "id": "yellow",
    }
)

console = Console(theme=MEDIAMATCH_THEME, stderr=False)
err_console = Console(theme=MEDIAMATCH_THEME, stderr=True)

STATUS_STYLES: dict[MatchStatus, str] = {
    MatchStatus.PENDING: "dim",
    MatchStatus.IN_LIBRARY: "info",
    MatchStatus.MATCHED: "success",
    MatchStatus.UNMATCHED: "warning",
    MatchStatus.IMPORTING: "dim",
    MatchStatus.IMPORTED: "success",
    MatchStatus.ERROR: "error",
}


def print_success(message: str) -> None:
    console.print(f"  [success]✓[/] {escape(message)}")


def print_error(message: str) -> None:
    err_console.print(f"  [error]✗[/] {escape(message)}")


def print_warning(message: str) -> None:
    console.print(f"  [warning]![/] {escape(message)}")


def print_info(message: str) -> None:
    console.print(f"  [info]→[/] {escape(message)}")


def print_parsed(name: str, parsed: ParsedMetadata) -> None:
    """Print the fields recovered from one name."""
    table = Table(title=escape(name), show_header=False, title_justify="left")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Title", escape(parsed.clean_title) if parsed.clean_title else "[dim]-[/]")
    table.add_row("Year", str(parsed.year) if parsed.year else "[dim]-[/]")
    table.add_row("Quality", parsed.quality_tag or "[dim]-[/]")
    table.add_row("Catalog ID", str(parsed.external_id) if parsed.external_id else "[dim]-[/]")
    console.print(table)


def print_results_table(results: Sequence[MatchResult], title: str = "Reconciliation") -> None:
    """Print one row per entry with its match and status.

    Example:
        >>> print_results_table(results)
        ┏━━━━┳━━━━━━━━━━━━━━━━━━━━┳━━━━━━━━━━━━┳━━━━━━┳━━━━━━━━━━━━┳━━━━━━━━━┳━━━━━┓
        ┃ #  ┃ Name               ┃ Match      ┃ Year ┃ Confidence ┃ Status  ┃ Sel ┃
        ┡━━━━╇━━━━━━━━━━━━━━━━━━━━╇━━━━━━━━━━━━╇━━━━━━╇━━━━━━━━━━━━╇━━━━━━━━━╇━━━━━┩
        │ 1  │ The.Matrix.1999... │ The Matrix │ 1999 │ 100%       │ matched │ ✓   │
        └────┴────────────────────┴────────────┴──────┴────────────┴─────────┴─────┘
    """
    if not results:
        console.print("[dim]No entries[/]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", overflow="fold")
    table.add_column("Match")
    table.add_column("Year", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Status")
    table.add_column("Sel", justify="center")

    for i, result in enumerate(results, 1):
        chosen = result.chosen
        style = STATUS_STYLES[result.status]
        if chosen is not None:
            match_text = escape(result.display_title or chosen.title)
        else:
            match_text = f"[dim]{escape(result.error or '-')}[/]"
        table.add_row(
            str(i),
            escape(result.entry.display_name),
            match_text,
            str(chosen.year) if chosen and chosen.year else "-",
            f"{result.confidence}%" if result.confidence is not None else "-",
            f"[{style}]{result.status.value}[/]",
            "✓" if result.selected else "",
        )

    console.print(table)


def print_run_summary(summary: RunSummary) -> None:
    """Print end-of-run counts."""
    if summary.cancelled:
        print_warning("Run cancelled; remaining entries were not looked up")
    print_success(f"{summary.matched_count} matched")
    print_info(f"{summary.already_in_library_count} already in library")
    if summary.unmatched_count:
        print_warning(f"{summary.unmatched_count} unmatched")
    if summary.pending_count:
        print_info(f"{summary.pending_count} not looked up")


@contextmanager
def progress_context(
    description: str = "Matching",
    total: int | None = None,
) -> Generator[tuple[Progress, TaskID], None, None]:
    """Context manager for a Rich progress bar on the error console."""
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )
    with progress:
        task_id = progress.add_task(description, total=total)
        yield progress, task_id
