"""Detection of the archive encoding.

An archive is either a self-contained HTML bundle (``index.html`` with the
report embedded as a base64 ZIP) or a flat report (one JSON document plus
sibling attachment files). The decision is made once, upfront, and returned
as a tagged value that selects the extractor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from runledger.core.exceptions import ReportFormatError
from runledger.reports.archive import ReportArchive

INDEX_HTML = "index.html"
REPORT_JSON = "report.json"
FLAT_REPORT_PATTERN = re.compile(r"data/.*\.json$")


@dataclass(frozen=True)
class BundleFormat:
    """Self-contained HTML report."""

    shell_entry: str = INDEX_HTML


@dataclass(frozen=True)
class FlatFormat:
    """Flat JSON report."""

    report_entry: str


DetectedFormat = BundleFormat | FlatFormat


def find_flat_report_entry(archive: ReportArchive) -> str | None:
    """Locate the JSON report document of a flat archive."""
    for name in archive.names:
        if FLAT_REPORT_PATTERN.search(name):
            return name
    if REPORT_JSON in archive:
        return REPORT_JSON
    return None


def detect_format(archive: ReportArchive) -> DetectedFormat:
    """Decide which extractor handles the archive.

    Raises:
        ReportFormatError: If the archive has neither an HTML shell nor a JSON report.
    """
    if INDEX_HTML in archive:
        return BundleFormat()

    report_entry = find_flat_report_entry(archive)
    if report_entry is not None:
        return FlatFormat(report_entry=report_entry)

    raise ReportFormatError(
        "Archive contains neither index.html nor a JSON report "
        "(expected report.json or data/*.json)"
    )
