"""Core data model and pure calculations for test-run ingestion."""

from runledger.core.exceptions import ReportFormatError
from runledger.core.fingerprint import calculate_fingerprint
from runledger.core.models import TestAttempt, TestRecord, TestStatus
from runledger.core.status import resolve_status
from runledger.core.timing import calculate_wall_clock_duration, format_duration

__all__ = [
    "ReportFormatError",
    "TestAttempt",
    "TestRecord",
    "TestStatus",
    "calculate_fingerprint",
    "calculate_wall_clock_duration",
    "format_duration",
    "resolve_status",
]
