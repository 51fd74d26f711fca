"""Screenshot upload to external object storage."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path, PurePosixPath
from typing import Protocol

from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive
from runledger.reports.screenshots import content_type_for, find_screenshot_entries

logger = get_logger(__name__)


class ScreenshotStore(Protocol):
    """Protocol for screenshot storage backends."""

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store one image and return its external URL."""
        ...


def storage_key(path: str) -> str:
    """Object key for an archive entry: ``screenshots/<epoch ms>-<file name>``."""
    file_name = PurePosixPath(path).name or "screenshot.png"
    return f"screenshots/{int(time.time() * 1000)}-{file_name}"


class FilesystemScreenshotStore:
    """Stores screenshots under a local directory served at ``base_url``."""

    def __init__(self, root: Path, base_url: str):
        self.root = root
        self.base_url = base_url.rstrip("/")

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        key = storage_key(path)
        target = self.root / key
        await asyncio.to_thread(self._write, target, data)
        return f"{self.base_url}/{key}"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


async def upload_screenshots(
    archive: ReportArchive,
    store: ScreenshotStore,
    timeout_seconds: float,
) -> dict[str, str]:
    """
    Upload every screenshot in the archive.

    Failed or timed-out uploads are logged and left out of the mapping; the
    references to them are dropped when records are rewritten.

    Args:
        archive: Source archive.
        store: Storage backend.
        timeout_seconds: Limit for each individual upload.

    Returns:
        Mapping of archive path to external URL.
    """
    urls: dict[str, str] = {}
    entries = find_screenshot_entries(archive)
    logger.debug("screenshots_found", count=len(entries))

    for path in entries:
        try:
            urls[path] = await asyncio.wait_for(
                store.upload(path, archive.read_bytes(path), content_type_for(path)),
                timeout=timeout_seconds,
            )
        except Exception as e:
            logger.warning("screenshot_upload_failed", path=path, error=str(e) or type(e).__name__)

    return urls
