"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import Generator


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires a PostgreSQL database)",
    )


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (require DATABASE_URL)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore default structlog configuration after each test.

    Commands and the app lifespan point structlog at whatever stream is
    current; a later test must not write into a stream that was closed.
    """
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def database_url() -> str | None:
    """Get database URL from environment."""
    return os.environ.get("DATABASE_URL")


@pytest.fixture(scope="session")
def setup_test_database(
    request: pytest.FixtureRequest, database_url: str | None
) -> Generator[None, None, None]:
    """
    Apply database migrations for integration tests.

    This fixture mirrors production deployment by running Alembic migrations.

    Only activates when:
    - DATABASE_URL is set
    - Running integration tests
    """
    run_integration = request.config.getoption("--run-integration", default=False)

    if not run_integration or not database_url:
        yield
        return

    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_cfg, "head")

    yield
