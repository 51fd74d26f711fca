"""Duplicate-run detection by content fingerprint."""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

from runledger.core.fingerprint import calculate_fingerprint, require_valid_fingerprint
from runledger.core.models import DuplicateDecision, ExistingRun
from runledger.logging import get_logger
from runledger.reports import extract_report
from runledger.reports.archive import ReportArchive

if TYPE_CHECKING:
    from runledger.backend.repository import TestRunRepository

logger = get_logger(__name__)

# Suite value meaning "search every project"
ALL_SUITES = "all"


class DuplicateDetectionService:
    """Answers whether a run with the same content was already recorded.

    The check never fails the caller: a failing or slow lookup is logged and
    reported as "not a duplicate", so a broken duplicate check cannot block a
    legitimate upload.
    """

    def __init__(self, repository: TestRunRepository, timeout_seconds: float = 5.0):
        """
        Initialize duplicate detection service.

        Args:
            repository: Run repository bound to a session.
            timeout_seconds: Limit for the whole lookup.
        """
        self.repository = repository
        self.timeout_seconds = timeout_seconds

    async def _resolve_scope(self, scope_key: str | None) -> uuid.UUID | None:
        if not scope_key or scope_key == ALL_SUITES:
            return None
        return await self.repository.get_suite_project_id(scope_key)

    async def _lookup(self, fingerprint: str, scope_key: str | None) -> ExistingRun | None:
        project_id = await self._resolve_scope(scope_key)
        return await self.repository.find_duplicate_by_fingerprint(fingerprint, project_id)

    async def check(self, fingerprint: str, scope_key: str | None = None) -> DuplicateDecision:
        """
        Look up the newest run with ``fingerprint``.

        Args:
            fingerprint: Content fingerprint of the candidate run.
            scope_key: Suite id restricting the search to the suite's project.

        Returns:
            DuplicateDecision; not-duplicate when the lookup fails.
        """
        try:
            existing = await asyncio.wait_for(
                self._lookup(fingerprint, scope_key),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "duplicate_lookup_failed",
                fingerprint=fingerprint,
                scope=scope_key,
                error=str(e) or type(e).__name__,
            )
            return DuplicateDecision(is_duplicate=False)

        if existing is None:
            return DuplicateDecision(is_duplicate=False)

        logger.info(
            "duplicate_detected",
            fingerprint=fingerprint,
            existing_run_id=existing.id,
            scope=scope_key,
        )
        return DuplicateDecision(is_duplicate=True, existing_run=existing)

    async def check_archive(
        self,
        data: bytes,
        scope_key: str | None = None,
        precomputed_fingerprint: str | None = None,
    ) -> DuplicateDecision:
        """
        Check an archive for duplicates.

        A precomputed fingerprint is used verbatim and the archive is not
        opened at all.

        Raises:
            ValueError: If the precomputed fingerprint is malformed.
            ReportFormatError: If the fingerprint has to be computed and the
                archive cannot be interpreted.
        """
        if precomputed_fingerprint is not None:
            return await self.check(require_valid_fingerprint(precomputed_fingerprint), scope_key)

        with ReportArchive.from_bytes(data) as archive:
            fingerprint = calculate_fingerprint(extract_report(archive).records)
        return await self.check(fingerprint, scope_key)
