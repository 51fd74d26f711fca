"""Run duration calculations.

Tests in a Playwright run execute in parallel worker lanes, so the serial
sum of test durations overstates how long the run took. The wall-clock
duration is the span from the earliest test start to the latest test end.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from runledger.core.models import TestRecord


@dataclass
class TestTiming:
    """Start time and duration of a single test."""

    started_at: str | datetime | None
    duration_ms: int | float | None


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (or pass through a datetime).

    Naive values are assumed to be UTC. Returns None when the value is
    missing or unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            # Handle ISO format with Z suffix
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def calculate_wall_clock_duration(timings: Iterable[TestTiming]) -> int | None:
    """Calculate the elapsed time of a parallel run.

    Args:
        timings: Start time and duration of each test.

    Returns:
        Milliseconds from the first start to the last end, or None if no
        entry has a parseable start time and a non-negative duration.
    """
    spans: list[tuple[float, float]] = []
    for timing in timings:
        start = parse_timestamp(timing.started_at)
        if start is None or timing.duration_ms is None or timing.duration_ms < 0:
            continue
        start_ms = start.timestamp() * 1000
        spans.append((start_ms, start_ms + timing.duration_ms))

    if not spans:
        return None

    earliest = min(start for start, _ in spans)
    latest = max(end for _, end in spans)
    return round(latest - earliest)


def timings_from_records(records: Iterable[TestRecord]) -> list[TestTiming]:
    """Build timing entries from normalized records."""
    return [TestTiming(started_at=r.started_at, duration_ms=r.duration_ms) for r in records]


def format_duration(duration_ms: int | float) -> str:
    """Format milliseconds as ``"<minutes>m <seconds>s"``."""
    duration_ms = int(duration_ms)
    minutes = duration_ms // 60000
    seconds = (duration_ms % 60000) // 1000
    return f"{minutes}m {seconds}s"
