"""Tests for archive access and format detection."""

from __future__ import annotations

import pytest

from runledger.core.exceptions import ReportFormatError
from runledger.reports.archive import ReportArchive
from runledger.reports.detector import BundleFormat, FlatFormat, detect_format
from tests.factories import zip_bytes


class TestReportArchive:
    """In-memory ZIP access."""

    def test_hides_system_metadata_and_directories(self):
        data = zip_bytes(
            {
                "index.html": "<html></html>",
                "__MACOSX/._index.html": b"\x00",
                "data/": b"",
                "data/shot.png": b"png",
            }
        )

        with ReportArchive.from_bytes(data) as archive:
            assert archive.names == ["index.html", "data/shot.png"]
            assert "__MACOSX/._index.html" not in archive
            assert archive.read_bytes("data/shot.png") == b"png"

    def test_invalid_zip_raises_format_error(self):
        with pytest.raises(ReportFormatError) as exc_info:
            ReportArchive.from_bytes(b"definitely not a zip", label="upload.zip")

        assert exc_info.value.path == "upload.zip"


class TestDetectFormat:
    """Choice between the HTML bundle and flat JSON extractors."""

    def test_index_html_is_bundle(self):
        archive = ReportArchive.from_bytes(zip_bytes({"index.html": "", "report.json": "{}"}))

        assert detect_format(archive) == BundleFormat()

    def test_report_json_is_flat(self):
        archive = ReportArchive.from_bytes(zip_bytes({"report.json": "{}"}))

        assert detect_format(archive) == FlatFormat(report_entry="report.json")

    def test_data_json_preferred_over_report_json(self):
        archive = ReportArchive.from_bytes(
            zip_bytes({"report.json": "{}", "data/results.json": "{}"})
        )

        assert detect_format(archive) == FlatFormat(report_entry="data/results.json")

    def test_neither_shape_raises(self):
        archive = ReportArchive.from_bytes(zip_bytes({"readme.txt": "hello"}))

        with pytest.raises(ReportFormatError, match="neither index.html nor a JSON report"):
            detect_format(archive)

    def test_macos_metadata_alone_is_not_a_report(self):
        archive = ReportArchive.from_bytes(zip_bytes({"__MACOSX/index.html": "x"}))

        with pytest.raises(ReportFormatError):
            detect_format(archive)
