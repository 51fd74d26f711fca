"""FastAPI dependency injection for the runledger backend."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from runledger.backend.config import get_settings
from runledger.backend.database import get_db
from runledger.backend.repository import TestRunRepository
from runledger.backend.services.duplicates import DuplicateDetectionService


def get_repository(session: Annotated[AsyncSession, Depends(get_db)]) -> TestRunRepository:
    """Repository bound to the request's session."""
    return TestRunRepository(session)


def get_duplicate_service(
    repository: Annotated[TestRunRepository, Depends(get_repository)],
) -> DuplicateDetectionService:
    """
    Get configured duplicate detection service.

    Returns:
        DuplicateDetectionService using the configured lookup timeout.
    """
    settings = get_settings()
    return DuplicateDetectionService(
        repository,
        timeout_seconds=settings.duplicate_lookup_timeout_seconds,
    )
