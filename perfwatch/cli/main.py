"""Perfwatch CLI - Main entry point."""

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from perfwatch.cli.compare import compare_revisions
from perfwatch.cli.run import run_benchmark
from perfwatch.config import load_settings
from perfwatch.store import ReportStore

app = typer.Typer(
    name="perfwatch",
    help="Lighthouse benchmarking - audit, store and compare reports per revision",
    no_args_is_help=True,
)

console = Console()

app.command("run")(run_benchmark)
app.command("compare")(compare_revisions)


@app.command()
def revisions(
    reports_dir: Path = typer.Option(
        None, "--reports-dir", "-d", help="Directory holding stored reports"
    ),
    config: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """List revisions with stored reports."""
    try:
        settings = load_settings(config, reports_dir=reports_dir)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    store = ReportStore(settings.reports_dir)

    stored = store.list_revisions()
    if not stored:
        console.print(f"[yellow]No reports stored in {settings.reports_dir}[/yellow]")
        return

    for revision in stored:
        formats = [fmt for fmt in ("json", "html") if store.exists(revision, fmt)]
        console.print(f"{revision}  [dim]{', '.join(formats)}[/dim]")


@app.command()
def version():
    """Show version information."""
    from perfwatch import __version__

    console.print(f"perfwatch version {__version__}")


if __name__ == "__main__":
    app()
