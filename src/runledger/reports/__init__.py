"""Playwright report archives: detection, extraction and post-processing."""

from __future__ import annotations

import json
from typing import Any

from runledger.core.models import ExtractionResult
from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive
from runledger.reports.bundle import extract_bundle
from runledger.reports.ci import build_run_metadata, extract_branch, normalize_environment
from runledger.reports.detector import BundleFormat, FlatFormat, detect_format
from runledger.reports.flat import extract_flat
from runledger.reports.optimize import OptimizationOptions, OptimizationStats, optimize_report
from runledger.reports.screenshots import find_screenshot_entries, resolve_screenshot_references

logger = get_logger(__name__)

ENVIRONMENT_JSON = "environment.json"


def read_environment_data(archive: ReportArchive) -> dict[str, Any] | None:
    """Read the optional ``environment.json`` written by some CI setups."""
    if ENVIRONMENT_JSON not in archive:
        return None
    try:
        data = json.loads(archive.read_bytes(ENVIRONMENT_JSON))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("environment_data_parse_failed", error=str(e))
        return None
    return data if isinstance(data, dict) else None


def extract_report(archive: ReportArchive) -> ExtractionResult:
    """Detect the archive encoding and run the matching extractor.

    Raises:
        ReportFormatError: If the archive is in neither supported shape or a
            required document is invalid.
    """
    match detect_format(archive):
        case BundleFormat():
            result = extract_bundle(archive)
        case FlatFormat(report_entry=entry):
            result = extract_flat(archive, entry)

    result.environment_data = read_environment_data(archive)
    return result


__all__ = [
    "OptimizationOptions",
    "OptimizationStats",
    "ReportArchive",
    "build_run_metadata",
    "detect_format",
    "extract_branch",
    "extract_bundle",
    "extract_flat",
    "extract_report",
    "find_screenshot_entries",
    "normalize_environment",
    "optimize_report",
    "read_environment_data",
    "resolve_screenshot_references",
]
