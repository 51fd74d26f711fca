"""Pydantic schemas for the runledger API."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

FINGERPRINT_PATTERN = r"^[0-9a-f]{64}$"


class CheckDuplicateRequest(BaseModel):
    """Request schema for a duplicate check with a client-computed fingerprint."""

    fingerprint: str = Field(
        ...,
        pattern=FINGERPRINT_PATTERN,
        description="Lowercase hex SHA-256 content fingerprint of the run",
    )
    suite: str | None = Field(None, description="Suite id scoping the search; 'all' for none")
    environment: str | None = Field(None, max_length=100)
    trigger: str | None = Field(None, max_length=100)
    branch: str | None = Field(None, max_length=255)
    commit: str | None = Field(None, max_length=64)


class ExistingRunResponse(BaseModel):
    """Reference to the run that makes the candidate a duplicate."""

    id: str
    timestamp: str


class RunContext(BaseModel):
    """Run context echoed back to the caller."""

    environment: str | None = None
    trigger: str | None = None
    branch: str | None = None
    commit: str | None = None


class CheckDuplicateResponse(BaseModel):
    """Response schema for a duplicate check."""

    is_duplicate: bool
    duplicate_count: int = Field(..., ge=0, le=1)
    existing_run: ExistingRunResponse | None = None
    metadata: RunContext


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str | None = None


class DatabaseHealthStatus(BaseModel):
    """Database health status details."""

    connected: bool
    latency_ms: float
    error: str | None = None


class DetailedHealthResponse(BaseModel):
    """Detailed health check response with component status."""

    status: str = Field(
        ...,
        description="Overall health status: healthy, degraded, or unhealthy",
    )
    version: str
    database: DatabaseHealthStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
