"""Thin read-only wrapper around a ZIP archive held in memory."""

from __future__ import annotations

import io
import zipfile

from runledger.core.exceptions import ReportFormatError

# Entries created by macOS Finder when zipping; never report content
SYSTEM_METADATA_PREFIX = "__MACOSX/"


class ReportArchive:
    """Named-entry access to a report archive.

    System-metadata entries and directory entries are hidden from
    :attr:`names`, so callers never have to filter them.
    """

    def __init__(self, zip_file: zipfile.ZipFile) -> None:
        self._zip = zip_file
        self._names = [
            info.filename
            for info in zip_file.infolist()
            if not info.is_dir() and not info.filename.startswith(SYSTEM_METADATA_PREFIX)
        ]

    @classmethod
    def from_bytes(cls, data: bytes, label: str = "archive") -> ReportArchive:
        """Open an archive from raw bytes.

        Raises:
            ReportFormatError: If the bytes are not a readable ZIP archive.
        """
        try:
            return cls(zipfile.ZipFile(io.BytesIO(data)))
        except zipfile.BadZipFile as e:
            raise ReportFormatError(f"Not a valid ZIP archive: {e}", path=label) from e

    @property
    def names(self) -> list[str]:
        """Return entry names in archive order."""
        return list(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def read_bytes(self, name: str) -> bytes:
        """Read and decompress an entry."""
        return self._zip.read(name)

    def read_text(self, name: str) -> str:
        """Read an entry as UTF-8 text.

        Raises:
            ReportFormatError: If the entry is not valid UTF-8.
        """
        try:
            return self._zip.read(name).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ReportFormatError(f"Entry is not valid UTF-8 text: {e}", path=name) from e

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> ReportArchive:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
