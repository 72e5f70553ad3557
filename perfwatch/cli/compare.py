"""Compare stored reports command."""

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from perfwatch.comparator import MetricComparator
from perfwatch.config import load_settings
from perfwatch.digest import DigestBuilder
from perfwatch.errors import ReportIOError, ReportNotFoundError, ReportParseError
from perfwatch.store import ReportStore
from perfwatch.types import ComparisonOutcome, Direction

console = Console()


def compare_revisions(
    current: str = typer.Argument(..., help="Revision to check"),
    baseline: str = typer.Argument(..., help="Baseline revision, e.g. 'master'"),
    reports_dir: Path = typer.Option(
        None, "--reports-dir", "-d", help="Directory holding stored reports"
    ),
    config: Path = typer.Option(None, "--config", "-c", help="Config file"),
    output: str = typer.Option(
        "table", "--output", "-o", help="Output format: table, json, markdown"
    ),
    fail_on_regression: bool = typer.Option(
        False, "--fail-on-regression", "-f", help="Exit 1 if regressions found"
    ),
    write_digests: bool = typer.Option(
        False, "--write-digests", help="Write digest files next to the current report"
    ),
):
    """Compare two stored reports without running an audit.

    Examples:
        # Compare a commit against the trunk report
        perfwatch compare 3f2c1ab master

        # Gate CI on regressions
        perfwatch compare 3f2c1ab master --fail-on-regression
    """
    try:
        settings = load_settings(config, reports_dir=reports_dir)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    store = ReportStore(settings.reports_dir)

    try:
        current_report = store.read(current)
        baseline_report = store.read(baseline)
    except (ReportNotFoundError, ReportParseError, ReportIOError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    outcomes = MetricComparator().compare(current_report, baseline_report)

    if write_digests:
        builder = DigestBuilder(store)
        for location in builder.persist(builder.build(outcomes, current), current):
            console.print(f"[dim]Wrote {location.path}[/dim]")

    if output == "json":
        console.print(
            json.dumps(
                {
                    "current": current_report.revision,
                    "baseline": baseline_report.revision,
                    "passed": not _regressions(outcomes),
                    "outcomes": [o.model_dump(mode="json") for o in outcomes],
                },
                indent=2,
            )
        )
    elif output == "markdown":
        display_markdown(current_report.revision, baseline_report.revision, outcomes)
    else:
        display_table(current_report.revision, baseline_report.revision, outcomes)

    if fail_on_regression and _regressions(outcomes):
        raise typer.Exit(1)


def _regressions(outcomes: list[ComparisonOutcome]) -> list[ComparisonOutcome]:
    return [o for o in outcomes if o.direction == Direction.REGRESSION]


def _improvements(outcomes: list[ComparisonOutcome]) -> list[ComparisonOutcome]:
    return [o for o in outcomes if o.direction == Direction.IMPROVEMENT]


def format_delta(outcome: ComparisonOutcome) -> str:
    """Render the delta of an outcome for display."""
    if outcome.readings is not None:
        return ", ".join(f"{name} +{value:g}" for name, value in outcome.readings.items())
    if outcome.delta is None:
        return "-"
    return f"{outcome.delta:+d}ms"


def display_table(current: str, baseline: str, outcomes: list[ComparisonOutcome]) -> None:
    """Display comparison outcomes as tables."""
    regressions = _regressions(outcomes)
    improvements = _improvements(outcomes)

    console.print(f"\n[bold]Comparing:[/bold] {baseline} -> {current}")
    status = "[green]PASSED[/green]" if not regressions else "[red]REGRESSION DETECTED[/red]"
    console.print(f"[bold]Status:[/bold] {status}")

    for title, items, color in (
        ("Regressions", regressions, "red"),
        ("Improvements", improvements, "green"),
    ):
        if not items:
            continue

        console.print(f"\n[bold {color}]{title} ({len(items)}):[/bold {color}]")
        table = Table(show_header=True, header_style=f"bold {color}")
        table.add_column("Metric")
        table.add_column("Delta", justify="right")
        table.add_column("Message")

        for outcome in items:
            table.add_row(
                outcome.metric_id,
                f"[{color}]{format_delta(outcome)}[/{color}]",
                outcome.message,
            )

        console.print(table)

    if not outcomes:
        console.print("\n[dim]No changes on compared metrics[/dim]")


def display_markdown(current: str, baseline: str, outcomes: list[ComparisonOutcome]) -> None:
    """Display comparison outcomes as markdown."""
    regressions = _regressions(outcomes)
    improvements = _improvements(outcomes)

    print("## Performance Comparison")
    print()
    print(f"**Baseline:** {baseline}")
    print(f"**Current:** {current}")
    print(f"**Status:** {'PASSED' if not regressions else 'REGRESSION DETECTED'}")
    print()

    for title, items in (("Regressions", regressions), ("Improvements", improvements)):
        if not items:
            continue
        print(f"### {title}")
        print()
        print("| Metric | Delta | Message |")
        print("|--------|-------|---------|")
        for outcome in items:
            print(f"| {outcome.metric_id} | {format_delta(outcome)} | {outcome.message} |")
        print()
