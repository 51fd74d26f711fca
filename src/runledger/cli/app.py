"""Main Typer CLI application for runledger."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from runledger.cli.formatters import optimization_table, summary_table, tests_table
from runledger.core.exceptions import ReportFormatError
from runledger.ingest import IngestContext, IngestResult, ingest_archive
from runledger.logging import configure_logging
from runledger.reports.optimize import DEFAULT_IMAGE_QUALITY, OptimizationOptions, optimize_report

app = typer.Typer(
    name="runledger",
    help="Ingest Playwright report archives: stats, fingerprints and optimization",
    no_args_is_help=True,
)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

ArchiveArgument = Annotated[
    Path,
    typer.Argument(
        help="Path to a Playwright report ZIP archive",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
]


@app.callback()
def configure(
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Log level for diagnostics written to stderr",
            envvar="RUNLEDGER_LOG_LEVEL",
        ),
    ] = "WARNING",
) -> None:
    """Configure logging for every command."""
    configure_logging(log_level=log_level, json_format=False)


def _ingest(archive: Path, context: IngestContext | None = None) -> IngestResult:
    try:
        return ingest_archive(archive.read_bytes(), context)
    except ReportFormatError as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def inspect(
    archive: ArchiveArgument,
    branch: Annotated[
        str | None,
        typer.Option("-b", "--branch", help="Branch name; detected from CI metadata when omitted"),
    ] = None,
    environment: Annotated[
        str | None,
        typer.Option("-e", "--environment", help="Environment label (e.g. prod, staging)"),
    ] = None,
    trigger: Annotated[
        str | None,
        typer.Option("-t", "--trigger", help="What triggered the run"),
    ] = None,
    commit: Annotated[
        str | None,
        typer.Option("-c", "--commit", help="Commit hash"),
    ] = None,
    show_tests: Annotated[
        bool,
        typer.Option("--tests", help="List every test"),
    ] = False,
    failing: Annotated[
        bool,
        typer.Option("--failing", help="List failed and flaky tests only"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output JSON to stdout"),
    ] = False,
) -> None:
    """Summarize a report archive: statistics, run metadata and fingerprint."""
    context = IngestContext(environment=environment, trigger=trigger, branch=branch, commit=commit)
    result = _ingest(archive, context)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(summary_table(result))
    if show_tests or failing:
        console.print()
        console.print(tests_table(result, only_failing=failing and not show_tests))


@app.command()
def fingerprint(archive: ArchiveArgument) -> None:
    """Print the content fingerprint used for duplicate detection."""
    result = _ingest(archive)
    typer.echo(result.fingerprint)


@app.command()
def optimize(
    archive: ArchiveArgument,
    output: Annotated[
        Path | None,
        typer.Option(
            "-o",
            "--output",
            help="Where to write the optimized archive (default: <name>.optimized.zip)",
        ),
    ] = None,
    keep_traces: Annotated[bool, typer.Option("--keep-traces", help="Keep trace files")] = False,
    keep_videos: Annotated[bool, typer.Option("--keep-videos", help="Keep videos")] = False,
    keep_har: Annotated[bool, typer.Option("--keep-har", help="Keep HAR and network logs")] = False,
    keep_png: Annotated[
        bool, typer.Option("--keep-png", help="Do not re-encode PNG screenshots as JPEG")
    ] = False,
    image_quality: Annotated[
        int, typer.Option("--image-quality", min=1, max=95, help="JPEG quality for screenshots")
    ] = DEFAULT_IMAGE_QUALITY,
) -> None:
    """Strip traces, videos and network logs and compress screenshots."""
    options = OptimizationOptions(
        remove_traces=not keep_traces,
        remove_videos=not keep_videos,
        remove_har_files=not keep_har,
        compress_images=not keep_png,
        image_quality=image_quality,
    )
    try:
        data, stats = optimize_report(archive.read_bytes(), options)
    except ReportFormatError as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(code=1) from e

    target = output or archive.with_name(f"{archive.stem}.optimized.zip")
    target.write_bytes(data)

    console.print(optimization_table(stats))
    console.print(f"Written to {target}")


def main() -> None:
    """Entry point for the Typer CLI."""
    app()
