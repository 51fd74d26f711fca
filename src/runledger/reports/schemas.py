"""Pydantic schemas for Playwright report documents."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class _ReportModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Annotation(_ReportModel):
    type: str
    description: str | None = None


class Location(_ReportModel):
    file: str
    line: int
    column: int


class ErrorDetail(_ReportModel):
    message: str
    stack: str | None = None


class AttachmentRef(_ReportModel):
    name: str
    content_type: str = Field(alias="contentType")
    path: str | None = None
    body: str | None = None


class ResultEntry(_ReportModel):
    """One attempt. Unknown fields are kept; step payloads are not validated."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    worker_index: int | None = Field(None, alias="workerIndex")
    status: Literal["passed", "failed", "timedOut", "skipped", "flaky", "interrupted"]
    duration: float
    error: ErrorDetail | None = None
    errors: list[str | ErrorDetail] | None = None
    attachments: list[AttachmentRef] | None = None
    retry: int
    start_time: str = Field(alias="startTime")
    steps: list[dict[str, Any]] | None = None


class SpecEntry(_ReportModel):
    test_id: str = Field(alias="testId")
    title: str
    project_name: str = Field(alias="projectName")
    location: Location | None = None
    outcome: Literal["expected", "unexpected", "flaky", "skipped"]
    duration: float
    annotations: list[Annotation] | None = None
    results: list[ResultEntry]


class Suite(_ReportModel):
    title: str
    file: str
    line: int
    column: int
    specs: list[SpecEntry] | None = None
    suites: list[Suite] | None = None


class ReportConfig(_ReportModel):
    root_dir: str = Field(alias="rootDir")
    config_file: str | None = Field(None, alias="configFile")


class ReportStats(_ReportModel):
    start_time: str = Field(alias="startTime")
    duration: float


class FlatReport(_ReportModel):
    """Top-level document of a flat JSON report."""

    config: ReportConfig
    suites: list[Suite]
    stats: ReportStats | None = None


class FileEntry(_ReportModel):
    """Per-file test container inside an HTML bundle."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    file_id: str | None = Field(None, alias="fileId")
    file_name: str | None = Field(None, alias="fileName")
    tests: list[SpecEntry]


def describe_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as ``dotted.path: message`` pairs."""
    return ", ".join(
        f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in error.errors()
    )


def first_error_path(error: ValidationError) -> str | None:
    """Dotted location of the first validation error."""
    errors = error.errors()
    if not errors:
        return None
    return ".".join(str(part) for part in errors[0]["loc"])


Suite.model_rebuild()
