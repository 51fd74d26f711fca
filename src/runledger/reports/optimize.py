"""Size reduction of report archives before upload.

Traces, videos and network logs are usually most of an HTML report's size
and carry nothing the ingestion pipeline reads. PNG screenshots are
re-encoded as JPEG under the same name with a ``.jpg`` suffix; screenshot
reference rewriting falls back to that variant. None of this touches the
extracted records, so the fingerprint is unchanged.
"""

from __future__ import annotations

import io
import re
import zipfile
from dataclasses import dataclass

from PIL import Image

from runledger.core.exceptions import ReportFormatError
from runledger.logging import get_logger

logger = get_logger(__name__)

TRACE_PATTERNS = (
    re.compile(r"data/.*\.zip$"),
    re.compile(r"data/trace/"),
    re.compile(r"\.trace$"),
)
VIDEO_PATTERNS = (re.compile(r"video\.webm$"),)
NETWORK_PATTERNS = (
    re.compile(r"\.har$"),
    re.compile(r"\.network$"),
)
PNG_SCREENSHOT = re.compile(r"\.png$", re.IGNORECASE)
DEFAULT_IMAGE_QUALITY = 80


@dataclass
class OptimizationOptions:
    """Which artifact families to strip and how to treat screenshots."""

    remove_traces: bool = True
    remove_videos: bool = True
    remove_har_files: bool = True
    compress_images: bool = True
    image_quality: int = DEFAULT_IMAGE_QUALITY

    def exclude_patterns(self) -> list[re.Pattern[str]]:
        patterns: list[re.Pattern[str]] = []
        if self.remove_traces:
            patterns.extend(TRACE_PATTERNS)
        if self.remove_videos:
            patterns.extend(VIDEO_PATTERNS)
        if self.remove_har_files:
            patterns.extend(NETWORK_PATTERNS)
        return patterns


@dataclass
class OptimizationStats:
    """Outcome of an optimization pass."""

    original_size: int
    optimized_size: int = 0
    files_removed: int = 0
    bytes_removed: int = 0
    images_compressed: int = 0
    image_bytes_saved: int = 0

    @property
    def compression_ratio(self) -> float:
        """Size reduction as a percentage of the original."""
        if not self.original_size:
            return 0.0
        return (self.original_size - self.optimized_size) / self.original_size * 100

    def to_dict(self) -> dict[str, float]:
        """Serialize to dictionary."""
        return {
            "original_size": self.original_size,
            "optimized_size": self.optimized_size,
            "compression_ratio": round(self.compression_ratio, 2),
            "files_removed": self.files_removed,
            "bytes_removed": self.bytes_removed,
            "images_compressed": self.images_compressed,
            "image_bytes_saved": self.image_bytes_saved,
        }


def is_png_screenshot(path: str) -> bool:
    return bool(PNG_SCREENSHOT.search(path)) and ("screenshot" in path or "data/" in path)


def compress_png(content: bytes, quality: int = DEFAULT_IMAGE_QUALITY) -> bytes:
    """Re-encode PNG bytes as JPEG.

    Raises:
        OSError: If the bytes are not a decodable image.
    """
    output = io.BytesIO()
    with Image.open(io.BytesIO(content)) as image:
        # JPEG has no alpha channel
        image.convert("RGB").save(output, format="JPEG", quality=quality)
    return output.getvalue()


def jpeg_path(path: str) -> str:
    return PNG_SCREENSHOT.sub(".jpg", path)


def optimize_report(
    data: bytes, options: OptimizationOptions | None = None
) -> tuple[bytes, OptimizationStats]:
    """Rewrite a report archive without traces, videos and network logs.

    PNG screenshots are converted to JPEG when ``compress_images`` is set.
    An image that cannot be decoded is kept as is.

    Args:
        data: Original archive bytes.
        options: Artifact families to remove. Defaults to all of them.

    Returns:
        Tuple of (optimized archive bytes, stats).

    Raises:
        ReportFormatError: If ``data`` is not a ZIP archive.
    """
    options = options or OptimizationOptions()
    patterns = options.exclude_patterns()
    stats = OptimizationStats(original_size=len(data))

    try:
        source = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ReportFormatError(f"Not a valid ZIP archive: {e}") from e

    output = io.BytesIO()
    with source, zipfile.ZipFile(
        output, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as target:
        for info in source.infolist():
            if info.is_dir():
                target.writestr(info, b"")
                continue
            if any(p.search(info.filename) for p in patterns):
                logger.debug("report_entry_removed", entry=info.filename, size=info.file_size)
                stats.files_removed += 1
                stats.bytes_removed += info.file_size
                continue
            content = source.read(info)
            if options.compress_images and is_png_screenshot(info.filename):
                try:
                    compressed = compress_png(content, options.image_quality)
                except (OSError, ValueError) as e:
                    logger.warning("image_compression_failed", entry=info.filename, error=str(e))
                else:
                    target.writestr(jpeg_path(info.filename), compressed)
                    stats.images_compressed += 1
                    stats.image_bytes_saved += len(content) - len(compressed)
                    continue
            target.writestr(info.filename, content)

    optimized = output.getvalue()
    stats.optimized_size = len(optimized)
    logger.info(
        "report_optimized",
        files_removed=stats.files_removed,
        bytes_removed=stats.bytes_removed,
        images_compressed=stats.images_compressed,
        compression_ratio=round(stats.compression_ratio, 2),
    )
    return optimized, stats
