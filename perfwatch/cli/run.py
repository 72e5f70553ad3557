"""Run benchmark command."""

import asyncio
import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from perfwatch.cli.compare import format_delta
from perfwatch.collaborators import SourceControl
from perfwatch.config import BenchmarkSettings, load_settings
from perfwatch.errors import PublishError
from perfwatch.log import setup_logging
from perfwatch.orchestrator import BenchmarkOrchestrator
from perfwatch.types import RunResult

console = Console()


def run_benchmark(
    url: str = typer.Option(
        None, "--url", "-u", help="URL to audit (default: published build for the revision)"
    ),
    benchmark: bool = typer.Option(
        False, "--benchmark", "-b", help="Compare against the trunk baseline report"
    ),
    benchmark_ref: str = typer.Option(
        None, "--benchmark-ref", help="Compare against this reference instead of trunk"
    ),
    local: bool = typer.Option(
        False, "--local", "-l", help="Local run: no trunk skip, no publishing"
    ),
    update_baseline: bool = typer.Option(
        False, "--update-baseline", help="Also store this report as the trunk baseline"
    ),
    headful: bool = typer.Option(
        False, "--headful", help="Run Chrome with a window and open the HTML report"
    ),
    reports_dir: Path = typer.Option(
        None, "--reports-dir", "-d", help="Directory holding stored reports"
    ),
    config: Path = typer.Option(None, "--config", "-c", help="Config file"),
    publish: bool = typer.Option(
        True, "--publish/--no-publish", help="Push report files to the remote"
    ),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Audit the target URL and compare it against the baseline report.

    Examples:
        # Audit a local server without publishing
        perfwatch run --url http://localhost:3000 --local

        # CI: benchmark the branch against trunk and publish the reports
        perfwatch run --benchmark
    """
    try:
        settings = load_settings(
            config,
            target_url=url,
            is_local_run=True if local else None,
            update_baseline=True if update_baseline else None,
            headless=False if headful else None,
            reports_dir=reports_dir,
            log_level="debug" if verbose else None,
        )
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if benchmark or benchmark_ref:
        settings = settings.model_copy(
            update={"benchmark_ref": benchmark_ref or settings.trunk_ref}
        )

    setup_logging(settings.log_level)

    orchestrator = build_orchestrator(settings)
    result = asyncio.run(orchestrator.run())

    if not result.succeeded:
        console.print(f"[red]Benchmark run failed: {result.error}[/red]")
        raise typer.Exit(result.exit_code)

    if output == "json":
        console.print(json.dumps(_result_dict(result), indent=2, default=str))
    else:
        _display_result(result)

    if result.skipped:
        return

    if not settings.headless and result.report_location is not None:
        typer.launch(str(result.report_location.path.resolve()))

    if settings.is_local_run or not publish:
        console.print("[dim]Not publishing report files[/dim]")
        return

    try:
        asyncio.run(publish_result(orchestrator.source_control, result, settings))
    except PublishError as e:
        console.print(f"[red]Failed to publish reports: {e}[/red]")
        raise typer.Exit(1)


def build_orchestrator(settings: BenchmarkSettings) -> BenchmarkOrchestrator:
    return BenchmarkOrchestrator(settings)


async def publish_result(
    source_control: SourceControl, result: RunResult, settings: BenchmarkSettings
) -> None:
    """Push the run's files to its revision and, if asked, to trunk."""
    trunk = settings.trunk_branch

    if result.revision != trunk:
        await source_control.publish(result.files, result.revision)

    if settings.update_baseline:
        files = result.baseline_files if result.revision != trunk else result.files
        await source_control.publish(files, trunk)


def _result_dict(result: RunResult) -> dict:
    return {
        "state": result.state.value,
        "revision": result.revision,
        "baseline_revision": result.baseline_revision,
        "skipped": result.skipped,
        "report": str(result.report_location.path) if result.report_location else None,
        "digests": [str(loc.path) for loc in result.digest_locations],
        "outcomes": [o.model_dump(mode="json") for o in result.outcomes],
    }


def _display_result(result: RunResult) -> None:
    if result.skipped:
        console.print(f"[yellow]Skipped benchmark on {result.revision}[/yellow]")
        return

    console.print(f"\n[bold]Revision:[/bold] {result.revision}")
    if result.baseline_revision:
        console.print(f"[bold]Baseline:[/bold] {result.baseline_revision}")

    if result.outcomes:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric")
        table.add_column("Direction")
        table.add_column("Delta", justify="right")
        table.add_column("Message")

        for outcome in result.outcomes:
            color = "red" if outcome in result.regressions else "green"
            table.add_row(
                outcome.metric_id,
                f"[{color}]{outcome.direction.value}[/{color}]",
                format_delta(outcome),
                outcome.message,
            )
        console.print(table)
    elif result.baseline_revision:
        console.print("[dim]No changes against baseline[/dim]")

    for location in result.digest_locations:
        console.print(f"[dim]Digest: {location.path}[/dim]")
    if result.report_location is not None:
        console.print(f"[green]Report saved to {result.report_location.path}[/green]")
