"""runledger - Playwright test-run ingestion, fingerprinting and duplicate detection."""

__version__ = "0.4.0"

from runledger.core.models import (
    DuplicateDecision,
    ReportFormat,
    RunMetadata,
    RunStats,
    TestAttempt,
    TestRecord,
    TestStatus,
)
from runledger.ingest import IngestContext, IngestResult, ingest_archive, ingest_report

__all__ = [
    "DuplicateDecision",
    "IngestContext",
    "IngestResult",
    "ReportFormat",
    "RunMetadata",
    "RunStats",
    "TestAttempt",
    "TestRecord",
    "TestStatus",
    "ingest_archive",
    "ingest_report",
]
