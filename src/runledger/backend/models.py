"""Database models for the runledger backend."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Project(Base):
    """A project owning suites and test runs."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    suites: Mapped[list[Suite]] = relationship(
        "Suite",
        back_populates="project",
        cascade="all, delete-orphan",
    )
    test_runs: Mapped[list[TestRun]] = relationship(
        "TestRun",
        back_populates="project",
    )


class Suite(Base):
    """A named group of tests within a project; the scope of duplicate checks."""

    __tablename__ = "suites"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    project: Mapped[Project] = relationship(
        "Project",
        back_populates="suites",
    )


class TestRun(Base):
    """One ingested report archive."""

    __tablename__ = "test_runs"
    __table_args__ = (Index("ix_test_runs_content_hash_timestamp", "content_hash", "timestamp"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id"),
        nullable=True,
    )
    suite_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("suites.id"),
        nullable=True,
    )
    environment: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger: Mapped[str | None] = mapped_column(String(100), nullable=True)
    branch: Mapped[str] = mapped_column(String(255), nullable=False)
    commit: Mapped[str | None] = mapped_column(String(64), nullable=True)
    total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    passed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    flaky: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    wall_clock_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    ci_metadata: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    environment_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    uploaded_filename: Mapped[str | None] = mapped_column(String(500), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    project: Mapped[Project | None] = relationship(
        "Project",
        back_populates="test_runs",
    )
    tests: Mapped[list[TestCase]] = relationship(
        "TestCase",
        back_populates="test_run",
        cascade="all, delete-orphan",
    )


class TestCase(Base):
    """Final outcome of one test within a run."""

    __tablename__ = "tests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    test_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("test_runs.id"),
        nullable=False,
    )
    test_id: Mapped[str] = mapped_column(String(255), nullable=False)
    file: Mapped[str] = mapped_column(String(500), nullable=False)
    name: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    worker_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    screenshots: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    test_metadata: Mapped[dict] = mapped_column("metadata", JSONB, default=dict, nullable=False)

    # Relationships
    test_run: Mapped[TestRun] = relationship(
        "TestRun",
        back_populates="tests",
    )
    results: Mapped[list[TestResult]] = relationship(
        "TestResult",
        back_populates="test",
        cascade="all, delete-orphan",
    )


class TestResult(Base):
    """One attempt (retry) of a test."""

    __tablename__ = "test_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    test_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tests.id"),
        nullable=False,
    )
    retry_index: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_stack: Mapped[str | None] = mapped_column(Text, nullable=True)
    screenshots: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    attachments: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    steps: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    last_failed_step: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # Relationships
    test: Mapped[TestCase] = relationship(
        "TestCase",
        back_populates="results",
    )
