"""Upload service: ingest an archive, reject duplicates, store the rest."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from runledger.backend.services.duplicates import ALL_SUITES, DuplicateDetectionService
from runledger.backend.storage import upload_screenshots
from runledger.ingest import IngestContext, IngestResult, ingest_report
from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive
from runledger.reports.screenshots import resolve_screenshot_references

if TYPE_CHECKING:
    from runledger.backend.config import Settings
    from runledger.backend.repository import TestRunRepository
    from runledger.backend.storage import ScreenshotStore
    from runledger.core.models import DuplicateDecision

logger = get_logger(__name__)


@dataclass
class UploadOutcome:
    """Result of processing one uploaded archive."""

    result: IngestResult
    decision: DuplicateDecision
    test_run_id: str | None = None
    screenshots_uploaded: int = 0
    screenshots_dropped: int = 0

    @property
    def stored(self) -> bool:
        return self.test_run_id is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "test_run_id": self.test_run_id,
            "fingerprint": self.result.fingerprint,
            "duplicate": self.decision.to_dict(),
            "stats": self.result.stats.to_dict(),
            "duration": self.result.duration_formatted,
            "branch": self.result.metadata.branch,
            "environment": self.result.metadata.environment,
            "screenshots_uploaded": self.screenshots_uploaded,
            "screenshots_dropped": self.screenshots_dropped,
        }


class UploadService:
    """Runs ingestion and hands the outcome to storage and persistence.

    The duplicate check happens before any screenshot is uploaded, so a
    duplicate archive causes no external writes at all.
    """

    def __init__(
        self,
        repository: TestRunRepository,
        store: ScreenshotStore | None = None,
        duplicate_timeout_seconds: float = 5.0,
        upload_timeout_seconds: float = 30.0,
    ):
        """
        Initialize upload service.

        Args:
            repository: Run repository bound to a session.
            store: Screenshot storage; screenshots are skipped when None.
            duplicate_timeout_seconds: Limit for the duplicate lookup.
            upload_timeout_seconds: Limit for each screenshot upload.
        """
        self.repository = repository
        self.store = store
        self.upload_timeout_seconds = upload_timeout_seconds
        self.duplicates = DuplicateDetectionService(repository, duplicate_timeout_seconds)

    @classmethod
    def from_settings(
        cls,
        repository: TestRunRepository,
        store: ScreenshotStore | None,
        settings: Settings,
    ) -> UploadService:
        """Build a service using the configured lookup and upload timeouts."""
        return cls(
            repository,
            store,
            duplicate_timeout_seconds=settings.duplicate_lookup_timeout_seconds,
            upload_timeout_seconds=settings.screenshot_upload_timeout_seconds,
        )

    async def _project_for_suite(self, suite_id: str | None) -> uuid.UUID | None:
        if not suite_id or suite_id == ALL_SUITES:
            return None
        return await self.repository.get_suite_project_id(suite_id)

    async def process(
        self,
        data: bytes,
        context: IngestContext | None = None,
        *,
        suite_id: str | None = None,
        filename: str | None = None,
    ) -> UploadOutcome:
        """
        Ingest and store an archive unless an identical run already exists.

        Args:
            data: Archive bytes.
            context: Caller-supplied run context, possibly with a precomputed fingerprint.
            suite_id: Suite the run belongs to; also scopes the duplicate check.
            filename: Original archive name, kept for reference.

        Returns:
            UploadOutcome; ``test_run_id`` is None when the run was a duplicate.

        Raises:
            ReportFormatError: If the archive cannot be interpreted.
        """
        with ReportArchive.from_bytes(data, label=filename or "archive") as archive:
            result = ingest_report(archive, context)

            decision = await self.duplicates.check(result.fingerprint, suite_id)
            if decision.is_duplicate:
                return UploadOutcome(result=result, decision=decision)

            urls: dict[str, str] = {}
            if self.store is not None:
                urls = await upload_screenshots(archive, self.store, self.upload_timeout_seconds)

        dropped = resolve_screenshot_references(result.records, urls)
        project_id = await self._project_for_suite(suite_id)
        # A resolved project implies suite_id is a valid suite UUID
        suite_uuid = uuid.UUID(suite_id) if project_id is not None and suite_id else None
        run = await self.repository.insert_run(
            result,
            project_id=project_id,
            suite_id=suite_uuid,
            uploaded_filename=filename,
        )

        logger.info(
            "upload_processed",
            test_run_id=str(run.id),
            tests=len(result.records),
            screenshots_uploaded=len(urls),
            screenshots_dropped=dropped,
        )
        return UploadOutcome(
            result=result,
            decision=decision,
            test_run_id=str(run.id),
            screenshots_uploaded=len(urls),
            screenshots_dropped=dropped,
        )
