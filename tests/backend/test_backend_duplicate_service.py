"""Tests for the duplicate detection service."""

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from tests.factories import make_mixed_suite_archive

FINGERPRINT = "ab" * 32


def _repository(existing=None, project_id=None) -> MagicMock:
    repository = MagicMock()
    repository.find_duplicate_by_fingerprint = AsyncMock(return_value=existing)
    repository.get_suite_project_id = AsyncMock(return_value=project_id)
    return repository


class TestCheck:
    """Fingerprint lookups."""

    @pytest.mark.asyncio
    async def test_no_existing_run(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService

        decision = await DuplicateDetectionService(_repository()).check(FINGERPRINT)

        assert decision.is_duplicate is False
        assert decision.existing_run is None

    @pytest.mark.asyncio
    async def test_existing_run_is_duplicate(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService
        from runledger.core.models import ExistingRun

        # Given
        existing = ExistingRun(id="run-1", timestamp="2024-01-15T10:00:00+00:00")
        service = DuplicateDetectionService(_repository(existing=existing))

        # When
        with capture_logs() as logs:
            decision = await service.check(FINGERPRINT)

        # Then
        assert decision.is_duplicate is True
        assert decision.existing_run == existing
        assert decision.to_dict()["existing_run"]["id"] == "run-1"
        assert any(log["event"] == "duplicate_detected" for log in logs)

    @pytest.mark.asyncio
    async def test_suite_scope_resolves_project(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService

        # Given
        project_id = uuid.uuid4()
        repository = _repository(project_id=project_id)
        suite_id = str(uuid.uuid4())

        # When
        await DuplicateDetectionService(repository).check(FINGERPRINT, suite_id)

        # Then
        repository.get_suite_project_id.assert_awaited_once_with(suite_id)
        repository.find_duplicate_by_fingerprint.assert_awaited_once_with(FINGERPRINT, project_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("scope", [None, "", "all"])
    async def test_unscoped_search(self, scope):
        from runledger.backend.services.duplicates import DuplicateDetectionService

        repository = _repository()

        await DuplicateDetectionService(repository).check(FINGERPRINT, scope)

        repository.get_suite_project_id.assert_not_awaited()
        repository.find_duplicate_by_fingerprint.assert_awaited_once_with(FINGERPRINT, None)

    @pytest.mark.asyncio
    async def test_lookup_failure_is_not_duplicate(self):
        """A broken lookup never blocks an upload."""
        from runledger.backend.services.duplicates import DuplicateDetectionService
        from runledger.core.exceptions import DuplicateLookupFailure

        # Given
        repository = _repository()
        repository.find_duplicate_by_fingerprint.side_effect = DuplicateLookupFailure("db down")

        # When
        with capture_logs() as logs:
            decision = await DuplicateDetectionService(repository).check(FINGERPRINT)

        # Then
        assert decision.is_duplicate is False
        failures = [log for log in logs if log["event"] == "duplicate_lookup_failed"]
        assert failures[0]["error"] == "db down"

    @pytest.mark.asyncio
    async def test_slow_lookup_times_out_as_not_duplicate(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService

        # Given
        async def slow_lookup(*args):
            await asyncio.sleep(5)

        repository = _repository()
        repository.find_duplicate_by_fingerprint = slow_lookup
        service = DuplicateDetectionService(repository, timeout_seconds=0.01)

        # When
        with capture_logs() as logs:
            decision = await service.check(FINGERPRINT)

        # Then
        assert decision.is_duplicate is False
        assert any(log["event"] == "duplicate_lookup_failed" for log in logs)


class TestCheckArchive:
    """Archive-level duplicate checks."""

    @pytest.mark.asyncio
    async def test_computes_fingerprint_from_archive(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService
        from runledger.ingest import ingest_archive

        # Given
        data = make_mixed_suite_archive()
        repository = _repository()

        # When
        await DuplicateDetectionService(repository).check_archive(data)

        # Then
        expected = ingest_archive(data).fingerprint
        repository.find_duplicate_by_fingerprint.assert_awaited_once_with(expected, None)

    @pytest.mark.asyncio
    async def test_precomputed_fingerprint_skips_archive(self):
        """Archive bytes are never parsed when a fingerprint is supplied."""
        from runledger.backend.services.duplicates import DuplicateDetectionService

        repository = _repository()

        await DuplicateDetectionService(repository).check_archive(
            b"not even a zip", precomputed_fingerprint=FINGERPRINT
        )

        repository.find_duplicate_by_fingerprint.assert_awaited_once_with(FINGERPRINT, None)

    @pytest.mark.asyncio
    async def test_malformed_precomputed_fingerprint_rejected(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService

        repository = _repository()

        with pytest.raises(ValueError):
            await DuplicateDetectionService(repository).check_archive(
                make_mixed_suite_archive(), precomputed_fingerprint="F" * 64
            )

        repository.find_duplicate_by_fingerprint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_archive_raises(self):
        from runledger.backend.services.duplicates import DuplicateDetectionService
        from runledger.core.exceptions import ReportFormatError

        with pytest.raises(ReportFormatError):
            await DuplicateDetectionService(_repository()).check_archive(b"not a zip")
