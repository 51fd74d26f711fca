"""Canonical data model for ingested Playwright test runs.

Every supported archive shape is normalized into these structures. The
fingerprint, wall-clock and statistics calculations only ever see
``TestRecord`` instances, never raw report JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UNKNOWN = "unknown"


class TestStatus(Enum):
    """Final observable status of a test."""

    PASSED = "passed"
    FAILED = "failed"
    FLAKY = "flaky"
    SKIPPED = "skipped"
    TIMED_OUT = "timedOut"


class ReportFormat(Enum):
    """Archive encodings understood by the extractors."""

    BUNDLE = "bundle"
    FLAT = "flat"


@dataclass
class Attachment:
    """Non-image attachment with inline textual content."""

    name: str
    content_type: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "content_type": self.content_type,
            "content": self.content,
        }


@dataclass
class TestAttempt:
    """One execution attempt (retry) of a test."""

    retry_index: int
    status: str
    duration_ms: int = 0
    error: str | None = None
    error_stack: str | None = None
    screenshots: list[str] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)
    start_time: str | None = None
    steps: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "retry_index": self.retry_index,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "error_stack": self.error_stack,
            "screenshots": list(self.screenshots),
            "attachments": [a.to_dict() for a in self.attachments],
            "start_time": self.start_time,
            "steps": self.steps,
        }


@dataclass
class TestMetadata:
    """Free-form metadata attached to a test record."""

    browser: str | None = None
    tags: list[str] = field(default_factory=list)
    annotations: list[dict[str, Any]] = field(default_factory=list)
    epic: str | None = None
    labels: list[dict[str, Any]] | None = None
    parameters: list[dict[str, Any]] | None = None
    description: str | None = None
    description_html: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary, omitting unset enrichment fields."""
        data: dict[str, Any] = {
            "browser": self.browser,
            "tags": list(self.tags),
            "annotations": list(self.annotations),
        }
        optional = {
            "epic": self.epic,
            "labels": self.labels,
            "parameters": self.parameters,
            "description": self.description,
            "description_html": self.description_html,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class TestRecord:
    """One canonical test execution, possibly spanning several attempts.

    ``status`` is always produced by :func:`runledger.core.status.resolve_status`
    and ``duration_ms`` is the sum of every attempt's duration.
    """

    id: str
    name: str
    file: str
    status: TestStatus
    duration_ms: int
    worker_index: int | None = None
    started_at: str | None = None
    error: str | None = None
    screenshots: list[str] = field(default_factory=list)
    attempts: list[TestAttempt] = field(default_factory=list)
    metadata: TestMetadata = field(default_factory=TestMetadata)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "file": self.file,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "worker_index": self.worker_index,
            "started_at": self.started_at,
            "error": self.error,
            "screenshots": list(self.screenshots),
            "attempts": [a.to_dict() for a in self.attempts],
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class ExtractionResult:
    """Output of either extractor, independent of the source format."""

    records: list[TestRecord]
    report_format: ReportFormat
    ci_metadata: dict[str, Any] | None = None
    started_at: str | None = None
    environment_data: dict[str, Any] | None = None


@dataclass
class RunMetadata:
    """Cross-cutting information about a run, independent of any single test."""

    environment: str
    branch: str
    trigger: str | None = None
    commit_hash: str | None = None
    commit_url: str | None = None
    build_url: str | None = None
    pr_title: str | None = None
    pr_url: str | None = None
    ci_variables: dict[str, Any] = field(default_factory=dict)
    started_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "environment": self.environment,
            "branch": self.branch,
            "trigger": self.trigger,
            "commit_hash": self.commit_hash,
            "commit_url": self.commit_url,
            "build_url": self.build_url,
            "pr_title": self.pr_title,
            "pr_url": self.pr_url,
            "ci_variables": dict(self.ci_variables),
            "started_at": self.started_at,
        }


@dataclass
class RunStats:
    """Pass/fail breakdown of a run. ``total`` excludes skipped tests."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    flaky: int = 0
    skipped: int = 0

    @property
    def pass_rate(self) -> float:
        """Percentage of non-skipped tests that passed."""
        return self.passed / self.total * 100 if self.total else 100.0

    def to_dict(self) -> dict[str, int]:
        """Serialize to dictionary."""
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "flaky": self.flaky,
            "skipped": self.skipped,
        }


@dataclass
class ExistingRun:
    """Reference to a previously persisted run."""

    id: str
    timestamp: str


@dataclass
class DuplicateDecision:
    """Answer to "has this exact run been recorded before"."""

    is_duplicate: bool
    existing_run: ExistingRun | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {"is_duplicate": self.is_duplicate}
        if self.existing_run:
            data["existing_run"] = {
                "id": self.existing_run.id,
                "timestamp": self.existing_run.timestamp,
            }
        return data
