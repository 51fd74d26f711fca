"""Persistence of ingested runs."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from runledger.backend.models import Suite, TestCase, TestResult, TestRun
from runledger.core.exceptions import DuplicateLookupFailure
from runledger.core.models import ExistingRun, TestAttempt, TestRecord
from runledger.core.timing import parse_timestamp
from runledger.logging import get_logger
from runledger.reports.attempts import find_last_failed_step

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from runledger.ingest import IngestResult

logger = get_logger(__name__)


def _as_uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _result_row(attempt: TestAttempt) -> TestResult:
    return TestResult(
        retry_index=attempt.retry_index,
        status=attempt.status,
        duration=attempt.duration_ms,
        error=attempt.error,
        error_stack=attempt.error_stack,
        screenshots=list(attempt.screenshots),
        attachments=[a.to_dict() for a in attempt.attachments],
        started_at=parse_timestamp(attempt.start_time),
        steps=attempt.steps,
        last_failed_step=find_last_failed_step(attempt.steps),
    )


def _test_row(record: TestRecord) -> TestCase:
    return TestCase(
        test_id=record.id,
        file=record.file,
        name=record.name,
        status=record.status.value,
        duration=record.duration_ms,
        worker_index=record.worker_index,
        started_at=parse_timestamp(record.started_at),
        error=record.error,
        screenshots=list(record.screenshots),
        test_metadata=record.metadata.to_dict(),
        results=[_result_row(a) for a in record.attempts],
    )


class TestRunRepository:
    """Queries and writes for test runs, bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_duplicate_by_fingerprint(
        self, fingerprint: str, project_id: uuid.UUID | None = None
    ) -> ExistingRun | None:
        """
        Find the most recent run with the given fingerprint.

        Args:
            fingerprint: Content fingerprint of the run.
            project_id: Restrict the search to one project when given.

        Returns:
            The newest matching run, or None.

        Raises:
            DuplicateLookupFailure: If the query fails.
        """
        stmt = (
            select(TestRun.id, TestRun.timestamp)
            .where(TestRun.content_hash == fingerprint)
            .order_by(TestRun.timestamp.desc())
            .limit(1)
        )
        if project_id is not None:
            stmt = stmt.where(TestRun.project_id == project_id)

        try:
            result = await self.session.execute(stmt)
            row = result.one_or_none()
        except SQLAlchemyError as e:
            raise DuplicateLookupFailure(f"Failed to check for duplicates: {e}") from e

        if row is None:
            return None
        run_id, timestamp = row
        return ExistingRun(id=str(run_id), timestamp=timestamp.isoformat())

    async def get_suite_project_id(self, suite_id: str | uuid.UUID) -> uuid.UUID | None:
        """Return the project of an active suite, or None if there is no such suite."""
        suite_uuid = _as_uuid(suite_id)
        if suite_uuid is None:
            return None

        try:
            result = await self.session.execute(
                select(Suite.project_id).where(Suite.id == suite_uuid, Suite.active.is_(True))
            )
        except SQLAlchemyError as e:
            raise DuplicateLookupFailure(f"Failed to fetch suite project: {e}") from e
        return result.scalar_one_or_none()

    async def insert_run(
        self,
        result: IngestResult,
        *,
        project_id: uuid.UUID | None = None,
        suite_id: uuid.UUID | None = None,
        uploaded_filename: str | None = None,
        timestamp: datetime | None = None,
    ) -> TestRun:
        """
        Persist a run with its tests and attempts.

        Args:
            result: Output of the ingestion pipeline.
            project_id: Owning project, if known.
            suite_id: Suite the run belongs to, if known.
            uploaded_filename: Name of the uploaded archive.
            timestamp: Run timestamp. Defaults to the report start time, then now.

        Returns:
            The flushed TestRun with its generated id.
        """
        metadata = result.metadata
        if timestamp is None:
            timestamp = parse_timestamp(metadata.started_at) or datetime.now(UTC)

        run = TestRun(
            project_id=project_id,
            suite_id=suite_id,
            environment=metadata.environment,
            trigger=metadata.trigger,
            branch=metadata.branch,
            commit=metadata.commit_hash,
            total=result.stats.total,
            passed=result.stats.passed,
            failed=result.stats.failed,
            flaky=result.stats.flaky,
            skipped=result.stats.skipped,
            duration=result.serial_duration_ms,
            wall_clock_duration=result.wall_clock_duration_ms,
            content_hash=result.fingerprint,
            ci_metadata=metadata.ci_variables or None,
            environment_data=result.environment_data,
            uploaded_filename=uploaded_filename,
            timestamp=timestamp,
            tests=[_test_row(r) for r in result.records],
        )
        self.session.add(run)
        await self.session.flush()

        logger.info(
            "test_run_inserted",
            test_run_id=str(run.id),
            tests=len(result.records),
            fingerprint=result.fingerprint,
        )
        return run
