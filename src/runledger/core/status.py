"""Resolution of a test's final status from its outcome and last attempt."""

from __future__ import annotations

from runledger.core.models import TestStatus

_ATTEMPT_STATUSES = {status.value: status for status in TestStatus}


def resolve_status(outcome: str | None, last_attempt_status: str | None) -> TestStatus:
    """Map a test-level outcome and the final attempt's result to a status.

    Skip takes precedence over any outcome, so a test that ultimately skipped
    is never reported as flaky or failed even if earlier attempts failed.

    Args:
        outcome: Playwright outcome classification (expected, unexpected, flaky, skipped).
        last_attempt_status: Status of the last attempt (passed, failed, timedOut, skipped).

    Returns:
        The canonical TestStatus.
    """
    if last_attempt_status == TestStatus.SKIPPED.value:
        return TestStatus.SKIPPED
    if outcome == "expected":
        # Unrecognized attempt results (e.g. "interrupted") count as failures
        return _ATTEMPT_STATUSES.get(last_attempt_status or "", TestStatus.FAILED)
    if outcome == "flaky":
        return TestStatus.FLAKY
    return TestStatus.FAILED
