"""Tests for the test-run repository."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.factories import make_mixed_suite_archive


def _session(row=None, scalar=None, error: Exception | None = None) -> MagicMock:
    """AsyncSession double whose execute() returns a canned result."""
    session = MagicMock()
    result = MagicMock()
    result.one_or_none.return_value = row
    result.scalar_one_or_none.return_value = scalar
    session.execute = AsyncMock(return_value=result, side_effect=error)
    session.flush = AsyncMock()
    return session


class TestFindDuplicateByFingerprint:
    """Newest-run lookup by content hash."""

    @pytest.mark.asyncio
    async def test_returns_existing_run(self):
        from runledger.backend.repository import TestRunRepository as Repository

        # Given
        run_id = uuid.uuid4()
        timestamp = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        session = _session(row=(run_id, timestamp))

        # When
        existing = await Repository(session).find_duplicate_by_fingerprint("a" * 64)

        # Then
        assert existing.id == str(run_id)
        assert existing.timestamp == "2024-01-15T10:00:00+00:00"

    @pytest.mark.asyncio
    async def test_none_when_no_match(self):
        from runledger.backend.repository import TestRunRepository as Repository

        existing = await Repository(_session()).find_duplicate_by_fingerprint("a" * 64)

        assert existing is None

    @pytest.mark.asyncio
    async def test_scoped_query_filters_project(self):
        from runledger.backend.repository import TestRunRepository as Repository

        # Given
        session = _session()

        # When
        await Repository(session).find_duplicate_by_fingerprint("a" * 64, uuid.uuid4())

        # Then
        statement = str(session.execute.call_args.args[0])
        assert "test_runs.content_hash" in statement
        assert "test_runs.project_id" in statement
        assert "ORDER BY test_runs.timestamp DESC" in statement

    @pytest.mark.asyncio
    async def test_database_error_raises_lookup_failure(self):
        from sqlalchemy.exc import OperationalError

        from runledger.backend.repository import TestRunRepository as Repository
        from runledger.core.exceptions import DuplicateLookupFailure

        session = _session(error=OperationalError("SELECT", {}, Exception("down")))

        with pytest.raises(DuplicateLookupFailure):
            await Repository(session).find_duplicate_by_fingerprint("a" * 64)


class TestGetSuiteProjectId:
    """Suite -> project resolution."""

    @pytest.mark.asyncio
    async def test_returns_project(self):
        from runledger.backend.repository import TestRunRepository as Repository

        project_id = uuid.uuid4()
        session = _session(scalar=project_id)

        assert await Repository(session).get_suite_project_id(str(uuid.uuid4())) == project_id

    @pytest.mark.asyncio
    async def test_invalid_suite_id_is_not_queried(self):
        from runledger.backend.repository import TestRunRepository as Repository

        session = _session()

        assert await Repository(session).get_suite_project_id("not-a-uuid") is None
        session.execute.assert_not_called()


class TestInsertRun:
    """Persisting an ingested run."""

    @pytest.mark.asyncio
    async def test_builds_rows_from_ingest_result(self):
        from runledger.backend.repository import TestRunRepository as Repository
        from runledger.ingest import ingest_archive

        # Given
        result = ingest_archive(make_mixed_suite_archive())
        session = _session()
        project_id = uuid.uuid4()

        # When
        run = await Repository(session).insert_run(
            result, project_id=project_id, uploaded_filename="report.zip"
        )

        # Then
        session.add.assert_called_once_with(run)
        session.flush.assert_awaited_once()
        assert run.project_id == project_id
        assert run.content_hash == result.fingerprint
        assert run.branch == "feature/checkout"
        assert (run.total, run.passed, run.failed, run.flaky, run.skipped) == (38, 18, 11, 9, 1)
        assert run.duration == result.serial_duration_ms
        assert run.wall_clock_duration == result.wall_clock_duration_ms
        assert run.timestamp == datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        assert run.uploaded_filename == "report.zip"
        assert len(run.tests) == 39

    @pytest.mark.asyncio
    async def test_attempt_rows_carry_last_failed_step(self):
        from runledger.backend.repository import TestRunRepository as Repository
        from runledger.ingest import ingest_archive
        from tests.factories import make_bundle_archive, make_result, make_test

        # Given
        failing = make_result(
            status="failed",
            errors=["Error: boom"],
            steps=[{"title": "click", "duration": 3, "error": {"message": "boom"}}],
        )
        data = make_bundle_archive(
            {"tests/a.spec.ts": [make_test("fails", outcome="unexpected", results=[failing])]}
        )
        result = ingest_archive(data)

        # When
        run = await Repository(_session()).insert_run(result)

        # Then
        [test_row] = run.tests
        [attempt_row] = test_row.results
        assert test_row.status == "failed"
        assert test_row.error == "Error: boom"
        assert attempt_row.last_failed_step == {"title": "click", "duration": 3, "error": "boom"}


@pytest.mark.integration
class TestRepositoryIntegration:
    """Round trip against a migrated PostgreSQL database."""

    @pytest.mark.asyncio
    async def test_insert_then_find_duplicate(self, setup_test_database, database_url):
        from runledger.backend.database import create_async_engine, get_session_maker
        from runledger.backend.repository import TestRunRepository as Repository
        from runledger.ingest import ingest_archive

        if not database_url:
            pytest.skip("DATABASE_URL not set")

        engine = create_async_engine(database_url)
        session_maker = get_session_maker(engine)
        result = ingest_archive(make_mixed_suite_archive())

        try:
            async with session_maker() as session:
                run = await Repository(session).insert_run(result)
                existing = await Repository(session).find_duplicate_by_fingerprint(
                    result.fingerprint
                )
                await session.rollback()
        finally:
            await engine.dispose()

        assert existing is not None
        assert existing.id == str(run.id)
