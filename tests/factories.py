"""Test data factories for runledger tests.

This module provides builders for raw Playwright report payloads, report
archives in both supported shapes, and canonical records.
Use these instead of defining fixtures locally in each test file.

Usage:
    from tests.factories import make_bundle_archive, make_test

    def test_something():
        data = make_bundle_archive({"login.spec.ts": [make_test("logs in")]})
"""

from __future__ import annotations

import base64
import io
import json
import zipfile
from datetime import UTC, datetime, timedelta
from typing import Any

from PIL import Image

from runledger.core import models

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)


def iso(offset_seconds: float = 0) -> str:
    """ISO-8601 timestamp ``offset_seconds`` after BASE_TIME, Playwright style."""
    moment = BASE_TIME + timedelta(seconds=offset_seconds)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def zip_bytes(entries: dict[str, bytes | str]) -> bytes:
    """Build an in-memory ZIP archive from ``name -> content``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def make_result(
    status: str = "passed",
    duration: int = 1000,
    start_time: str | None = None,
    errors: list[Any] | None = None,
    attachments: list[dict[str, Any]] | None = None,
    steps: list[dict[str, Any]] | None = None,
    retry: int = 0,
    worker_index: int = 0,
) -> dict[str, Any]:
    """Raw Playwright result (one attempt)."""
    result: dict[str, Any] = {
        "workerIndex": worker_index,
        "status": status,
        "duration": duration,
        "retry": retry,
        "startTime": start_time or iso(),
        "attachments": attachments or [],
        "steps": steps or [],
    }
    if errors is not None:
        result["errors"] = errors
    return result


def make_test(
    title: str = "should log in",
    file: str | None = "tests/login.spec.ts",
    outcome: str = "expected",
    results: list[dict[str, Any]] | None = None,
    project: str = "chromium",
    test_id: str | None = None,
    annotations: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Raw test descriptor as found in an HTML bundle's per-file container."""
    if results is None:
        results = [make_result()]
    test: dict[str, Any] = {
        "testId": test_id or f"{file}-{title}".replace(" ", "-"),
        "title": title,
        "projectName": project,
        "outcome": outcome,
        "duration": sum(r.get("duration", 0) for r in results),
        "annotations": annotations or [],
        "results": results,
    }
    if file is not None:
        test["location"] = {"file": file, "line": 10, "column": 5}
    return test


def make_image_attachment(path: str, name: str = "screenshot") -> dict[str, Any]:
    return {"name": name, "contentType": "image/png", "path": path}


def make_metadata_attachment(key: str) -> dict[str, Any]:
    return {
        "name": "allure-metadata",
        "contentType": "application/vnd.allure.message+json",
        "path": f"{key}.dat",
    }


def make_png(size: tuple[int, int] = (64, 48), mode: str = "RGBA") -> bytes:
    """Small but real PNG screenshot."""
    buffer = io.BytesIO()
    Image.new(mode, size, color=(200, 30, 30, 255)[: len(mode)]).save(buffer, format="PNG")
    return buffer.getvalue()


def make_sidecar(data: dict[str, Any]) -> bytes:
    """Sidecar body carrying Allure metadata."""
    return json.dumps({"type": "metadata", "data": data}).encode()


def make_bundle_archive(
    files: dict[str, list[dict[str, Any]]],
    report: dict[str, Any] | None = None,
    extra_entries: dict[str, bytes | str] | None = None,
    nested_extra: dict[str, bytes | str] | None = None,
) -> bytes:
    """Self-contained HTML report archive.

    Args:
        files: Spec file name -> raw test descriptors, one container per file.
        report: Body of the nested ``report.json``; omitted when None.
        extra_entries: Additional outer-archive entries (sidecars, screenshots).
        nested_extra: Additional nested-archive entries.
    """
    nested: dict[str, bytes | str] = {}
    if report is not None:
        nested["report.json"] = json.dumps(report)
    for index, (file_name, tests) in enumerate(files.items()):
        nested[f"file{index}.json"] = json.dumps(
            {"fileId": f"file{index}", "fileName": file_name, "tests": tests}
        )
    nested.update(nested_extra or {})

    payload = base64.b64encode(zip_bytes(nested)).decode()
    html = (
        "<!DOCTYPE html><html><body><script>\n"
        f'window.playwrightReportBase64 = "data:application/zip;base64,{payload}";'
        "\n</script></body></html>"
    )
    entries: dict[str, bytes | str] = {"index.html": html}
    entries.update(extra_entries or {})
    return zip_bytes(entries)


def make_spec(
    title: str = "should log in",
    outcome: str = "expected",
    results: list[dict[str, Any]] | None = None,
    file: str | None = "tests/login.spec.ts",
    project: str = "chromium",
    annotations: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Flat-report spec entry."""
    return make_test(
        title=title,
        file=file,
        outcome=outcome,
        results=results,
        project=project,
        annotations=annotations,
    )


def make_suite(
    title: str = "login.spec.ts",
    file: str = "tests/login.spec.ts",
    specs: list[dict[str, Any]] | None = None,
    suites: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Flat-report suite entry."""
    suite: dict[str, Any] = {
        "title": title,
        "file": file,
        "line": 0,
        "column": 0,
        "specs": specs or [],
    }
    if suites is not None:
        suite["suites"] = suites
    return suite


def make_flat_report(suites: list[dict[str, Any]], start_time: str | None = None) -> dict[str, Any]:
    """Flat JSON report document."""
    return {
        "config": {"rootDir": "/app/tests"},
        "suites": suites,
        "stats": {"startTime": start_time or iso(), "duration": 1000},
    }


def make_flat_archive(
    report: dict[str, Any] | str,
    entry: str = "report.json",
    extra_entries: dict[str, bytes | str] | None = None,
) -> bytes:
    """Flat report archive with the document stored under ``entry``."""
    body = report if isinstance(report, str) else json.dumps(report)
    entries: dict[str, bytes | str] = {entry: body}
    entries.update(extra_entries or {})
    return zip_bytes(entries)


def make_record(
    name: str = "should log in",
    file: str = "tests/login.spec.ts",
    status: models.TestStatus = models.TestStatus.PASSED,
    duration_ms: int = 1000,
    started_at: str | None = None,
    **kwargs: Any,
) -> models.TestRecord:
    """Canonical record."""
    return models.TestRecord(
        id=kwargs.pop("id", f"{file}-{name}"),
        name=name,
        file=file,
        status=status,
        duration_ms=duration_ms,
        started_at=started_at,
        **kwargs,
    )


def make_mixed_suite_archive() -> bytes:
    """Bundle with 39 tests: 18 passed, 11 failed, 9 flaky and 1 skipped."""
    files: dict[str, list[dict[str, Any]]] = {
        "tests/checkout.spec.ts": [],
        "tests/search.spec.ts": [],
        "tests/account.spec.ts": [],
    }
    names = list(files)
    plan = (
        [("expected", ["passed"])] * 18
        + [("unexpected", ["failed", "failed"])] * 11
        + [("flaky", ["failed", "passed"])] * 9
        + [("skipped", ["skipped"])]
    )
    for index, (outcome, statuses) in enumerate(plan):
        file = names[index % len(names)]
        results = [
            make_result(
                status=status,
                duration=2000,
                start_time=iso(index * 3 + retry * 2),
                retry=retry,
                worker_index=index % 4,
                errors=["Error: expect(received).toBe(expected)"] if status == "failed" else None,
            )
            for retry, status in enumerate(statuses)
        ]
        files[file].append(
            make_test(title=f"case {index:02d}", file=file, outcome=outcome, results=results)
        )

    report = {
        "metadata": {
            "ci": {
                "commitHash": "0123456789abcdef0123456789abcdef01234567",
                "GITHUB_HEAD_REF": "feature/checkout",
                "buildHref": "https://github.com/acme/shop/actions/runs/1?event=pull_request",
            }
        },
        "startTime": int(BASE_TIME.timestamp() * 1000),
    }
    return make_bundle_archive(files, report=report)
