"""API router for duplicate-run checks."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from runledger.backend.dependencies import get_duplicate_service
from runledger.backend.schemas import (
    CheckDuplicateRequest,
    CheckDuplicateResponse,
    ExistingRunResponse,
    RunContext,
)
from runledger.backend.services.duplicates import DuplicateDetectionService

router = APIRouter(tags=["Duplicates"])


@router.post(
    "/check-duplicate",
    response_model=CheckDuplicateResponse,
    summary="Check for a duplicate run",
    description=(
        "Check whether a run with the given content fingerprint was already "
        "recorded. The fingerprint is computed client-side; no archive is sent."
    ),
)
async def check_duplicate(
    request: CheckDuplicateRequest,
    service: Annotated[DuplicateDetectionService, Depends(get_duplicate_service)],
) -> CheckDuplicateResponse:
    """
    Check for a duplicate run.

    Args:
        request: Fingerprint, optional suite scope and run context.
        service: Duplicate detection service.

    Returns:
        Duplicate decision with the existing run, if any.
    """
    decision = await service.check(request.fingerprint, request.suite)

    existing_run = None
    if decision.existing_run is not None:
        existing_run = ExistingRunResponse(
            id=decision.existing_run.id,
            timestamp=decision.existing_run.timestamp,
        )

    return CheckDuplicateResponse(
        is_duplicate=decision.is_duplicate,
        duplicate_count=1 if decision.is_duplicate else 0,
        existing_run=existing_run,
        metadata=RunContext(
            environment=request.environment,
            trigger=request.trigger,
            branch=request.branch,
            commit=request.commit,
        ),
    )
