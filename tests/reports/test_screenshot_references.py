"""Tests for screenshot discovery and reference rewriting."""

from __future__ import annotations

from structlog.testing import capture_logs

from runledger.core.models import TestAttempt
from runledger.reports.archive import ReportArchive
from runledger.reports.screenshots import (
    content_type_for,
    find_screenshot_entries,
    resolve_screenshot_references,
)
from tests.factories import make_record, zip_bytes


class TestFindScreenshotEntries:
    def test_only_images_under_data(self):
        archive = ReportArchive.from_bytes(
            zip_bytes(
                {
                    "data/a.png": b"1",
                    "data/b.jpeg": b"2",
                    "data/trace.zip": b"3",
                    "other/c.png": b"4",
                    "data/d.jpg": b"5",
                }
            )
        )

        assert find_screenshot_entries(archive) == ["data/a.png", "data/b.jpeg", "data/d.jpg"]

    def test_content_type(self):
        assert content_type_for("data/a.jpg") == "image/jpeg"
        assert content_type_for("data/a.jpeg") == "image/jpeg"
        assert content_type_for("data/a.png") == "image/png"


class TestResolveScreenshotReferences:
    """Path -> URL rewriting after upload."""

    def test_rewrites_paths_to_urls(self):
        record = make_record(screenshots=["data/a.png"])
        urls = {"data/a.png": "https://cdn.example.com/a.png"}

        dropped = resolve_screenshot_references([record], urls)

        assert dropped == 0
        assert record.screenshots == ["https://cdn.example.com/a.png"]

    def test_falls_back_to_jpg_variant(self):
        record = make_record(screenshots=["data/a.png"])
        urls = {"data/a.jpg": "https://cdn.example.com/a.jpg"}

        resolve_screenshot_references([record], urls)

        assert record.screenshots == ["https://cdn.example.com/a.jpg"]

    def test_missing_reference_dropped_with_warning(self):
        # Given
        record = make_record(screenshots=["data/gone.png", "data/a.png"])
        urls = {"data/a.png": "https://cdn.example.com/a.png"}

        # When
        with capture_logs() as logs:
            dropped = resolve_screenshot_references([record], urls)

        # Then
        assert dropped == 1
        assert record.screenshots == ["https://cdn.example.com/a.png"]
        assert [log["path"] for log in logs if log["event"] == "screenshot_not_found"] == [
            "data/gone.png"
        ]

    def test_attempt_screenshots_rewritten(self):
        attempt = TestAttempt(retry_index=0, status="failed", screenshots=["data/x.png", "data/y.png"])
        record = make_record(attempts=[attempt])
        urls = {"data/x.png": "https://cdn.example.com/x.png"}

        dropped = resolve_screenshot_references([record], urls)

        assert dropped == 0
        assert attempt.screenshots == ["https://cdn.example.com/x.png"]
