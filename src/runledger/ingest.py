"""Ingestion pipeline: archive in, normalized records and run summary out.

The pipeline is pure CPU work and performs no writes, so aborting it at any
point needs no cleanup. Persistence and screenshot upload are handled by
:mod:`runledger.backend.services.upload` once the result is complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from runledger.core.fingerprint import calculate_fingerprint, require_valid_fingerprint
from runledger.core.models import ReportFormat, RunMetadata, RunStats, TestRecord
from runledger.core.stats import calculate_stats
from runledger.core.timing import calculate_wall_clock_duration, format_duration, timings_from_records
from runledger.logging import get_logger
from runledger.reports import extract_report
from runledger.reports.archive import ReportArchive
from runledger.reports.ci import build_run_metadata

logger = get_logger(__name__)


@dataclass
class IngestContext:
    """Run context supplied by the caller alongside the archive.

    ``fingerprint`` may carry a value the client already computed; it must be
    a well-formed digest and is then used verbatim, never recomputed.
    """

    environment: str | None = None
    trigger: str | None = None
    branch: str | None = None
    commit: str | None = None
    fingerprint: str | None = None


@dataclass
class IngestResult:
    """Everything derived from one archive."""

    records: list[TestRecord]
    stats: RunStats
    fingerprint: str
    metadata: RunMetadata
    report_format: ReportFormat
    serial_duration_ms: int
    wall_clock_duration_ms: int | None = None
    environment_data: dict[str, Any] | None = None
    fingerprint_precomputed: bool = False

    @property
    def duration_ms(self) -> int:
        """Wall-clock duration when known, otherwise the serial sum."""
        if self.wall_clock_duration_ms is not None:
            return self.wall_clock_duration_ms
        return self.serial_duration_ms

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.duration_ms)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "format": self.report_format.value,
            "fingerprint": self.fingerprint,
            "fingerprint_precomputed": self.fingerprint_precomputed,
            "stats": self.stats.to_dict(),
            "duration_ms": self.duration_ms,
            "duration": self.duration_formatted,
            "serial_duration_ms": self.serial_duration_ms,
            "wall_clock_duration_ms": self.wall_clock_duration_ms,
            "metadata": self.metadata.to_dict(),
            "environment_data": self.environment_data,
            "tests": [r.to_dict() for r in self.records],
        }


def ingest_report(archive: ReportArchive, context: IngestContext | None = None) -> IngestResult:
    """Run the full pipeline over an opened archive.

    Args:
        archive: Opened report archive.
        context: Caller-supplied run context.

    Returns:
        IngestResult with records, stats, fingerprint and run metadata.

    Raises:
        ReportFormatError: If the archive cannot be interpreted.
        ValueError: If the context carries a malformed precomputed fingerprint.
    """
    context = context or IngestContext()
    if context.fingerprint is not None:
        require_valid_fingerprint(context.fingerprint)
    extraction = extract_report(archive)
    records = extraction.records

    metadata = build_run_metadata(
        extraction.ci_metadata,
        environment=context.environment,
        trigger=context.trigger,
        branch=context.branch,
        commit=context.commit,
        started_at=extraction.started_at,
    )

    serial_duration = sum(r.duration_ms for r in records)
    wall_clock = calculate_wall_clock_duration(timings_from_records(records))
    if wall_clock is None:
        logger.warning(
            "missing_timing_warning",
            tests=len(records),
            fallback_duration_ms=serial_duration,
        )

    precomputed = context.fingerprint is not None
    fingerprint = context.fingerprint if precomputed else calculate_fingerprint(records)

    logger.info(
        "report_ingested",
        format=extraction.report_format.value,
        tests=len(records),
        branch=metadata.branch,
        environment=metadata.environment,
        fingerprint_precomputed=precomputed,
    )
    return IngestResult(
        records=records,
        stats=calculate_stats(records),
        fingerprint=fingerprint,
        metadata=metadata,
        report_format=extraction.report_format,
        serial_duration_ms=serial_duration,
        wall_clock_duration_ms=wall_clock,
        environment_data=extraction.environment_data,
        fingerprint_precomputed=precomputed,
    )


def ingest_archive(data: bytes, context: IngestContext | None = None) -> IngestResult:
    """Open archive bytes and run :func:`ingest_report` over them."""
    with ReportArchive.from_bytes(data) as archive:
        return ingest_report(archive, context)
