"""Extraction from flat Playwright JSON reports (legacy upload format)."""

from __future__ import annotations

import json

from pydantic import ValidationError

from runledger.core.exceptions import ReportFormatError
from runledger.core.models import ExtractionResult, ReportFormat, TestMetadata, TestRecord
from runledger.core.status import resolve_status
from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive
from runledger.reports.attempts import extract_screenshot_paths, extract_tags
from runledger.reports.bundle import normalize_start_time
from runledger.reports.schemas import (
    FlatReport,
    SpecEntry,
    Suite,
    describe_validation_error,
    first_error_path,
)

logger = get_logger(__name__)


def parse_flat_report(content: str, entry: str) -> FlatReport:
    """Decode and validate a flat JSON report document.

    Raises:
        ReportFormatError: On invalid JSON or any schema violation. The error
            path points at the first offending field.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ReportFormatError(f"Invalid JSON in report: {e}", path=entry) from e

    try:
        return FlatReport.model_validate(data)
    except ValidationError as e:
        raise ReportFormatError(
            f"Invalid Playwright report format: {describe_validation_error(e)}",
            path=first_error_path(e),
        ) from e


def _build_record(spec: SpecEntry, suite: Suite, path: str) -> TestRecord | None:
    if not spec.results:
        return None

    result = spec.results[-1]
    file = (spec.location.file if spec.location else None) or suite.file
    if not file:
        raise ReportFormatError("Test has no source file", path=f"{path}.location.file")

    raw_result = result.model_dump(by_alias=True, exclude_none=True)
    annotations = [a.model_dump(exclude_none=True) for a in spec.annotations or []]

    return TestRecord(
        id=spec.test_id,
        name=spec.title,
        file=file,
        status=resolve_status(spec.outcome, result.status),
        duration_ms=sum(max(int(r.duration), 0) for r in spec.results),
        worker_index=result.worker_index,
        started_at=result.start_time,
        error=result.error.message if result.error else None,
        screenshots=extract_screenshot_paths(raw_result.get("attachments")),
        metadata=TestMetadata(
            browser=spec.project_name,
            tags=extract_tags(annotations),
            annotations=annotations,
        ),
    )


def _walk_suites(suites: list[Suite], path: str) -> list[TestRecord]:
    """Depth-first walk: a suite's own specs come before its nested suites."""
    records: list[TestRecord] = []
    for suite_index, suite in enumerate(suites):
        suite_path = f"{path}.{suite_index}"
        for spec_index, spec in enumerate(suite.specs or []):
            record = _build_record(spec, suite, f"{suite_path}.specs.{spec_index}")
            if record is not None:
                records.append(record)
        if suite.suites:
            records.extend(_walk_suites(suite.suites, f"{suite_path}.suites"))
    return records


def extract_flat(archive: ReportArchive, entry: str) -> ExtractionResult:
    """Extract test records from a flat JSON report.

    No per-attempt history is kept for this format: each record's
    ``attempts`` list is empty and its screenshots come from the last result.

    Args:
        archive: Archive holding the report document.
        entry: Name of the report document inside the archive.
    """
    report = parse_flat_report(archive.read_text(entry), entry)
    records = _walk_suites(report.suites, "suites")

    started_at = normalize_start_time(report.stats.start_time) if report.stats else None
    logger.debug("report_extracted", format=ReportFormat.FLAT.value, entry=entry, tests=len(records))
    return ExtractionResult(
        records=records,
        report_format=ReportFormat.FLAT,
        started_at=started_at,
    )
