"""Extraction from self-contained Playwright HTML reports.

The HTML reporter ships ``index.html`` with the whole report embedded as a
base64-encoded ZIP. Inside that nested archive, ``report.json`` carries
run-level data and every other JSON entry holds the tests of one spec file.
Sidecar ``.dat`` files live in the outer archive.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from runledger.core.exceptions import ReportFormatError
from runledger.core.models import ExtractionResult, ReportFormat, TestMetadata, TestRecord
from runledger.core.status import resolve_status
from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive
from runledger.reports.attempts import build_attempt, extract_errors, extract_tags
from runledger.reports.detector import INDEX_HTML, REPORT_JSON
from runledger.reports.schemas import FileEntry, describe_validation_error
from runledger.reports.sidecar import SidecarLookup, build_sidecar_lookup, collect_sidecar_metadata

logger = get_logger(__name__)

EMBEDDED_REPORT_PATTERN = re.compile(r'window\.playwrightReportBase64 = "([^"]+)"')
DATA_URI_PREFIX = "data:application/zip;base64,"
JSON_EXT = ".json"


def decode_embedded_report(html: str) -> bytes:
    """Pull the base64 ZIP payload out of the report shell page.

    Raises:
        ReportFormatError: If no payload is assigned or it is not valid base64.
    """
    match = EMBEDDED_REPORT_PATTERN.search(html)
    if not match:
        raise ReportFormatError("No embedded report found in HTML", path=INDEX_HTML)

    payload = match.group(1).replace(DATA_URI_PREFIX, "", 1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ReportFormatError(f"Failed to decode embedded report: {e}", path=INDEX_HTML) from e


def normalize_start_time(value: Any) -> str | None:
    """Normalize an epoch-milliseconds number or ISO string to ISO-8601."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        moment = datetime.fromtimestamp(value / 1000, tz=UTC)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return str(value)


def read_report_document(nested: ReportArchive) -> tuple[dict[str, Any] | None, str | None]:
    """Read CI metadata and run start time from the nested ``report.json``."""
    if REPORT_JSON not in nested:
        return None, None

    try:
        report = json.loads(nested.read_text(REPORT_JSON))
    except json.JSONDecodeError as e:
        raise ReportFormatError(f"Invalid JSON in report document: {e}", path=REPORT_JSON) from e

    if not isinstance(report, dict):
        raise ReportFormatError("Report document is not a JSON object", path=REPORT_JSON)

    metadata = report.get("metadata")
    ci_metadata = metadata.get("ci") if isinstance(metadata, dict) else None
    if not isinstance(ci_metadata, dict):
        ci_metadata = None
    return ci_metadata or None, normalize_start_time(report.get("startTime"))


def build_record(
    test: dict[str, Any],
    file_name: str | None,
    lookup: SidecarLookup,
    path: str,
) -> TestRecord | None:
    """Normalize one raw test descriptor. Returns None for tests without results."""
    results = test.get("results") or []
    if not results:
        return None

    attempts = [build_attempt(result, index) for index, result in enumerate(results)]
    last_result = results[-1]
    last_attempt = attempts[-1]

    location = test.get("location") or {}
    file = location.get("file") or file_name
    if not file:
        raise ReportFormatError("Test has no source file", path=f"{path}.location.file")

    sidecar = collect_sidecar_metadata(last_result.get("attachments"), lookup)
    annotations = test.get("annotations") or []
    short_error, _ = extract_errors(last_result)

    return TestRecord(
        id=test.get("testId", ""),
        name=test.get("title", ""),
        file=file,
        status=resolve_status(test.get("outcome"), last_result.get("status")),
        duration_ms=sum(a.duration_ms for a in attempts),
        worker_index=last_result.get("workerIndex"),
        started_at=last_result.get("startTime"),
        error=short_error,
        screenshots=list(last_attempt.screenshots),
        attempts=attempts,
        metadata=TestMetadata(
            browser=test.get("projectName"),
            tags=extract_tags(annotations),
            annotations=annotations,
            epic=sidecar.epic,
            labels=sidecar.labels or None,
            parameters=sidecar.parameters or None,
            description=sidecar.description,
            description_html=sidecar.description_html,
        ),
    )


def _load_test_file(nested: ReportArchive, name: str) -> dict[str, Any] | None:
    """Parse a per-file test container, tolerating schema drift.

    Containers that fail validation are still used if they carry a ``tests``
    list; anything else is skipped with a warning.
    """
    try:
        data = json.loads(nested.read_bytes(name))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("test_file_parse_failed", entry=name, error=str(e))
        return None

    try:
        FileEntry.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "test_file_schema_mismatch",
            entry=name,
            errors=describe_validation_error(e),
        )
        if not (isinstance(data, dict) and isinstance(data.get("tests"), list)):
            return None
    return data


def extract_bundle(archive: ReportArchive) -> ExtractionResult:
    """Extract test records from a self-contained HTML report archive.

    Args:
        archive: Outer archive containing ``index.html`` and sidecar files.

    Returns:
        ExtractionResult with one record per test that has at least one result.

    Raises:
        ReportFormatError: If the embedded report is missing or unreadable.
    """
    html = archive.read_text(INDEX_HTML)
    nested = ReportArchive.from_bytes(decode_embedded_report(html), label=f"{INDEX_HTML}#embedded")

    with nested:
        ci_metadata, started_at = read_report_document(nested)
        lookup = build_sidecar_lookup(archive)

        records: list[TestRecord] = []
        for name in nested.names:
            if not name.endswith(JSON_EXT) or name == REPORT_JSON:
                continue
            test_file = _load_test_file(nested, name)
            if test_file is None:
                continue

            for index, test in enumerate(test_file.get("tests") or []):
                record = build_record(test, test_file.get("fileName"), lookup, f"{name}.tests.{index}")
                if record is not None:
                    records.append(record)

    logger.debug("report_extracted", format=ReportFormat.BUNDLE.value, tests=len(records))
    return ExtractionResult(
        records=records,
        report_format=ReportFormat.BUNDLE,
        ci_metadata=ci_metadata,
        started_at=started_at,
    )
