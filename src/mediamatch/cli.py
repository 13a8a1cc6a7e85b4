"""mediamatch CLI.

Diagnostic commands built with Typer and Rich:

- ``mediamatch parse NAME`` shows what the filename parser recovers
- ``mediamatch reconcile MANIFEST`` runs a reconciliation against the
  catalog for a JSON scan manifest and prints the results
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from mediamatch import __version__
from mediamatch.catalog.tmdb import TmdbCatalog
from mediamatch.config import Settings, load_settings
from mediamatch.exceptions import ConfigurationError, MediaMatchError
from mediamatch.logging_setup import setup_logging
from mediamatch.matching.parser import parse_filename
from mediamatch.models import MatchResult, MatchStatus, MediaKind, Progress, ScannedEntry
from mediamatch.reconcile import ReconciliationRun
from mediamatch.ui import (
    console,
    print_error,
    print_parsed,
    print_results_table,
    print_run_summary,
    print_warning,
    progress_context,
)

logger = logging.getLogger(__name__)

MAIN_EPILOG = """
[bold cyan]Examples:[/]
  mediamatch parse "The.Matrix.1999.1080p.BluRay.x264-GROUP.mkv"
  mediamatch parse --series "Show.Name.{tvdb-12345}.S01"
  mediamatch reconcile scan.json --concurrency 10

[dim]Catalog credentials are read from TMDB_API_KEY (or a .env file).[/]
"""

app = typer.Typer(
    name="mediamatch",
    help="Match scanned media files against a metadata catalog",
    epilog=MAIN_EPILOG,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


# =============================================================================
# Manifest
# =============================================================================


class ManifestEntry(BaseModel):
    """One scanner record."""

    path: str
    filename: str
    size: int = 0


class Manifest(BaseModel):
    """Scan manifest read by ``mediamatch reconcile``."""

    entries: list[ManifestEntry] = Field(default_factory=list)
    library_paths: list[str] = Field(default_factory=list)
    library_ids: list[int] = Field(default_factory=list)

    def scanned_entries(self) -> list[ScannedEntry]:
        return [ScannedEntry.from_scanner(e.model_dump()) for e in self.entries]


def load_manifest(path: Path) -> Manifest:
    """Read and validate a manifest file.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read manifest: {e}", config_file=path) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in manifest: {e}", config_file=path) from e

    try:
        return Manifest.model_validate(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field_name = ".".join(str(p) for p in first["loc"])
        raise ConfigurationError(
            f"Invalid manifest value for {field_name}: {first['msg']}",
            config_file=path,
            field=field_name,
        ) from e


def result_to_dict(result: MatchResult) -> dict[str, Any]:
    """JSON-friendly view of one result."""
    chosen = result.chosen
    return {
        "path": result.entry.path,
        "filename": result.entry.display_name,
        "status": result.status.value,
        "selected": result.selected,
        "confidence": result.confidence,
        "title": result.display_title,
        "external_id": chosen.external_id if chosen else None,
        "year": chosen.year if chosen else None,
        "alternates": [a.external_id for a in result.alternates],
        "parsed": {
            "title": result.parsed.clean_title,
            "year": result.parsed.year,
            "quality": result.parsed.quality_tag,
            "external_id": result.parsed.external_id,
        },
        "error": result.error,
    }


# =============================================================================
# Callback
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"mediamatch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose (DEBUG) logging."),
    ] = False,
) -> None:
    """Reconcile media files against a metadata catalog."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(
        log_level="DEBUG" if verbose else "INFO",
        rich_console=True,
        quiet_console=not verbose,
    )


# =============================================================================
# Commands
# =============================================================================


@app.command()
def parse(
    name: Annotated[str, typer.Argument(help="File or folder name to parse.")],
    series: Annotated[
        bool, typer.Option("--series", "-s", help="Parse as a series folder name.")
    ] = False,
) -> None:
    """Show the title, year, quality and catalog id recovered from a name."""
    print_parsed(name, parse_filename(name, is_series=series))


def make_catalog(settings: Settings, media_kind: MediaKind) -> TmdbCatalog:
    """Build the catalog client for a run."""
    return TmdbCatalog.from_settings(settings.catalog, media_kind)


async def _run_reconcile(
    manifest: Manifest,
    settings: Settings,
    media_kind: MediaKind,
    show_progress: bool,
) -> ReconciliationRun:
    async with make_catalog(settings, media_kind) as catalog:
        run = ReconciliationRun(catalog.search, media_kind=media_kind, settings=settings)
        state = run.start(
            manifest.scanned_entries(), manifest.library_paths, manifest.library_ids
        )
        if not show_progress:
            await run.run()
            return run

        pending = sum(1 for r in state.results if r.status is MatchStatus.PENDING)
        with progress_context("Matching", total=pending) as (progress, task_id):

            def on_progress(p: Progress) -> None:
                progress.update(task_id, completed=p.current, total=p.total)

            await run.run(on_progress=on_progress)
        return run


@app.command()
def reconcile(
    manifest_path: Annotated[
        Path,
        typer.Argument(
            metavar="MANIFEST",
            help="JSON manifest: {entries: [{path, filename, size}], library_paths, library_ids}.",
        ),
    ],
    series: Annotated[
        bool, typer.Option("--series", "-s", help="Entries are series folders.")
    ] = False,
    concurrency: Annotated[
        int | None,
        typer.Option("--concurrency", "-n", help="Lookups per wave (clamped to 1..20)."),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to config.yaml."),
    ] = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print results as JSON.")
    ] = False,
) -> None:
    """Match manifest entries against the catalog and print the results."""
    media_kind = MediaKind.SERIES if series else MediaKind.MOVIE

    try:
        manifest = load_manifest(manifest_path)
        settings = load_settings(config_file=config)
        if concurrency is not None:
            settings.match = settings.match.model_copy(update={"concurrency": concurrency})
        run = asyncio.run(
            _run_reconcile(manifest, settings, media_kind, show_progress=not as_json)
        )
    except MediaMatchError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    state = run.state
    results = state.results if state else []
    summary = run.summary()

    if as_json:
        payload = {
            "media_kind": media_kind.value,
            "results": [result_to_dict(r) for r in results],
            "summary": {
                "matched": summary.matched_count,
                "in_library": summary.already_in_library_count,
                "unmatched": summary.unmatched_count,
                "pending": summary.pending_count,
                "cancelled": summary.cancelled,
            },
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    for warning in settings.warnings:
        print_warning(warning)
    print_results_table(results, title=f"{media_kind.value.title()} reconciliation")
    print_run_summary(summary)


def main() -> None:
    """Entry point for the mediamatch console script."""
    app()
