"""
Command line entry points.

Env:
  TODOIST_TOKEN                       (required)
  DOC_ID / TEXT_FILE_ID / JSON_FILE_ID (at least one for `all`)
  TIMEZONE, DEBUG, SNAPSHOT_OUTPUT_DIR (optional)

Example cron (every morning at 6):
  0 6 * * * SNAPSHOT_OUTPUT_DIR=~/snapshots todoist-snapshot all
"""
from __future__ import annotations

from typing import Callable

import typer
from rich.console import Console

from .client import fetch_all
from .config import Settings, load_settings
from .document import to_renderable
from .errors import SnapshotError
from .log_setup import configure_logging
from .render import RenderContext, render_document
from .sync import sync_all, sync_to_document, sync_to_json_file, sync_to_text_file

app = typer.Typer(add_completion=False, no_args_is_help=True)

VerboseOpt = typer.Option(0, "-v", "--verbose", count=True, help="-v for debug logs")


def _settings(verbose: int) -> Settings:
    settings = load_settings()
    configure_logging(max(verbose, 1 if settings.debug else 0))
    return settings


def _single(routine: Callable[..., bool], verbose: int) -> None:
    settings = _settings(verbose)
    if not routine(settings):
        raise typer.Exit(1)


@app.command("all")
def all_targets(verbose: int = VerboseOpt):
    """Export to every configured target, fetching from Todoist once."""
    settings = _settings(verbose)
    try:
        results = sync_all(settings.values)
    except SnapshotError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(2)
    if not all(results.values()):
        raise typer.Exit(1)


@app.command()
def doc(verbose: int = VerboseOpt):
    """Export to the document target (DOC_ID)."""
    _single(sync_to_document, verbose)


@app.command()
def text(verbose: int = VerboseOpt):
    """Export to the plain text target (TEXT_FILE_ID)."""
    _single(sync_to_text_file, verbose)


@app.command("json")
def json_(verbose: int = VerboseOpt):
    """Export the raw snapshot to the JSON target (JSON_FILE_ID)."""
    _single(sync_to_json_file, verbose)


@app.command()
def preview(verbose: int = VerboseOpt):
    """Fetch tasks and print the formatted document to the terminal."""
    settings = _settings(verbose)
    try:
        bundle = fetch_all(settings)
        doc_ = render_document(bundle, RenderContext.from_settings(settings))
    except SnapshotError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(2)
    Console().print(to_renderable(doc_))


def main() -> None:
    app()
