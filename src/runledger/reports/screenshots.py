"""Screenshot discovery and reference rewriting.

Extraction keeps screenshots as archive-relative paths. Once the images have
been uploaded, :func:`resolve_screenshot_references` rewrites those paths to
the returned external URLs. It is the only stage that mutates records after
extraction.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from runledger.core.models import TestRecord
from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive

logger = get_logger(__name__)

SCREENSHOT_DIR = "data/"
SCREENSHOT_EXTENSIONS = (".png", ".jpg", ".jpeg")
JPEG_EXTENSIONS = (".jpg", ".jpeg")


def find_screenshot_entries(archive: ReportArchive) -> list[str]:
    """Return image entries under ``data/`` in archive order."""
    return [
        name
        for name in archive.names
        if name.startswith(SCREENSHOT_DIR) and name.endswith(SCREENSHOT_EXTENSIONS)
    ]


def content_type_for(path: str) -> str:
    """MIME type of a screenshot entry; anything not JPEG is treated as PNG."""
    return "image/jpeg" if path.endswith(JPEG_EXTENSIONS) else "image/png"


def _lookup(path: str, urls: Mapping[str, str]) -> str | None:
    # Optimized reports may have re-encoded PNGs as JPEGs
    url = urls.get(path)
    if url is None and path.endswith(".png"):
        url = urls.get(path[: -len(".png")] + ".jpg")
    return url


def _rewrite(paths: Iterable[str], urls: Mapping[str, str], test_id: str) -> tuple[list[str], int]:
    resolved: list[str] = []
    missing = 0
    for path in paths:
        url = _lookup(path, urls)
        if url is None:
            missing += 1
            logger.warning("screenshot_not_found", path=path, test_id=test_id)
            continue
        resolved.append(url)
    return resolved, missing


def resolve_screenshot_references(records: list[TestRecord], urls: Mapping[str, str]) -> int:
    """Rewrite record and attempt screenshots from archive paths to URLs.

    References with no uploaded counterpart (neither the path nor its
    ``.jpg`` variant) are dropped.

    Args:
        records: Records to rewrite in place.
        urls: Archive path to external URL, as returned by the upload step.

    Returns:
        Number of record-level references that were dropped.
    """
    dropped = 0
    for record in records:
        record.screenshots, missing = _rewrite(record.screenshots, urls, record.id)
        dropped += missing
        for attempt in record.attempts:
            attempt.screenshots = [
                url for url in (_lookup(p, urls) for p in attempt.screenshots) if url is not None
            ]
    return dropped
