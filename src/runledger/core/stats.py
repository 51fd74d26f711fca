"""Run-level pass/fail statistics."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from runledger.core.models import RunStats, TestRecord, TestStatus


def calculate_stats(records: Iterable[TestRecord]) -> RunStats:
    """Count records by final status.

    Skipped tests are excluded from ``total``; timed-out tests count as failed.
    """
    counts = Counter(r.status for r in records)
    skipped = counts[TestStatus.SKIPPED]
    return RunStats(
        total=sum(counts.values()) - skipped,
        passed=counts[TestStatus.PASSED],
        failed=counts[TestStatus.FAILED] + counts[TestStatus.TIMED_OUT],
        flaky=counts[TestStatus.FLAKY],
        skipped=skipped,
    )
