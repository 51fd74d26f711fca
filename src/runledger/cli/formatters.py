"""Rich rendering of ingestion results for the terminal."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table

from runledger.core.models import TestStatus

if TYPE_CHECKING:
    from runledger.ingest import IngestResult
    from runledger.reports.optimize import OptimizationStats

STATUS_STYLES = {
    TestStatus.PASSED: "green",
    TestStatus.FAILED: "red",
    TestStatus.TIMED_OUT: "red",
    TestStatus.FLAKY: "yellow",
    TestStatus.SKIPPED: "dim",
}


def format_bytes(size: int) -> str:
    """Human-readable byte count (e.g. 1536 -> '1.5 KB')."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def summary_table(result: IngestResult) -> Table:
    """Key/value overview of a run."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column(style="bold")
    table.add_column()

    stats = result.stats
    metadata = result.metadata
    table.add_row("Format", result.report_format.value)
    table.add_row("Tests", f"{len(result.records)} ({stats.total} executed)")
    table.add_row(
        "Results",
        f"[green]{stats.passed} passed[/] · [red]{stats.failed} failed[/] · "
        f"[yellow]{stats.flaky} flaky[/] · [dim]{stats.skipped} skipped[/]",
    )
    table.add_row("Pass rate", f"{stats.pass_rate:.1f}%")
    table.add_row("Duration", result.duration_formatted)
    table.add_row("Branch", metadata.branch)
    table.add_row("Environment", metadata.environment)
    if metadata.trigger:
        table.add_row("Trigger", metadata.trigger)
    if metadata.commit_hash:
        table.add_row("Commit", metadata.commit_hash)
    table.add_row("Fingerprint", result.fingerprint)
    return table


def tests_table(result: IngestResult, only_failing: bool = False) -> Table:
    """One row per test, optionally restricted to non-passing tests."""
    table = Table(title="Tests")
    table.add_column("Status")
    table.add_column("File")
    table.add_column("Name")
    table.add_column("Attempts", justify="right")
    table.add_column("Duration", justify="right")

    for record in sorted(result.records, key=lambda r: (r.file, r.name)):
        if only_failing and record.status in (TestStatus.PASSED, TestStatus.SKIPPED):
            continue
        style = STATUS_STYLES.get(record.status, "")
        table.add_row(
            f"[{style}]{record.status.value}[/]" if style else record.status.value,
            record.file,
            record.name,
            str(len(record.attempts)),
            f"{record.duration_ms / 1000:.1f}s",
        )
    return table


def optimization_table(stats: OptimizationStats) -> Table:
    """Before/after sizes of an optimization pass."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Original", format_bytes(stats.original_size))
    table.add_row("Optimized", format_bytes(stats.optimized_size))
    table.add_row("Saved", f"{stats.compression_ratio:.1f}%")
    table.add_row("Files removed", f"{stats.files_removed} ({format_bytes(stats.bytes_removed)})")
    if stats.images_compressed:
        table.add_row(
            "Images compressed",
            f"{stats.images_compressed} ({format_bytes(stats.image_bytes_saved)} saved)",
        )
    return table
