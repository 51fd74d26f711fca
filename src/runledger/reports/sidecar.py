"""Sidecar metadata files (Allure annotations) keyed by content hash.

Allure's Playwright integration writes structured metadata as ``<hash>.dat``
files next to the report and references them from a test's attachments.
Sidecars are enrichment only: a malformed one is logged and skipped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from runledger.logging import get_logger
from runledger.reports.archive import ReportArchive

logger = get_logger(__name__)

SIDECAR_SUFFIX = ".dat"
METADATA_CONTENT_TYPE = "application/vnd.allure.message+json"

SidecarLookup = dict[str, dict[str, Any]]


@dataclass
class SidecarParseResult:
    """Outcome of parsing one sidecar entry."""

    key: str
    data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SidecarMetadata:
    """Metadata merged from every sidecar referenced by a test."""

    labels: list[dict[str, Any]] = field(default_factory=list)
    parameters: list[dict[str, Any]] = field(default_factory=list)
    description: str | None = None
    description_html: str | None = None

    @property
    def epic(self) -> str | None:
        """Value of the first label named ``epic``."""
        for label in self.labels:
            if label.get("name") == "epic":
                return label.get("value")
        return None

    def merge(self, data: dict[str, Any]) -> None:
        """Fold one sidecar payload in. Lists concatenate; descriptions are first-wins."""
        if isinstance(data.get("labels"), list):
            self.labels.extend(data["labels"])
        if isinstance(data.get("parameters"), list):
            self.parameters.extend(data["parameters"])
        if data.get("description") and not self.description:
            self.description = data["description"]
        if data.get("descriptionHtml") and not self.description_html:
            self.description_html = data["descriptionHtml"]


def sidecar_key(path: str) -> str:
    """Strip the sidecar suffix from an entry name or attachment path."""
    if path.endswith(SIDECAR_SUFFIX):
        return path[: -len(SIDECAR_SUFFIX)]
    return path


def parse_sidecar(key: str, content: bytes) -> SidecarParseResult:
    """Parse a sidecar body without raising."""
    try:
        payload = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return SidecarParseResult(key=key, error=str(e))

    if isinstance(payload, dict) and payload.get("type") == "metadata":
        data = payload.get("data")
        if isinstance(data, dict):
            return SidecarParseResult(key=key, data=data)
    return SidecarParseResult(key=key)


def build_sidecar_lookup(archive: ReportArchive) -> SidecarLookup:
    """Scan the archive once and map content-hash keys to metadata payloads."""
    lookup: SidecarLookup = {}
    for name in archive.names:
        if not name.endswith(SIDECAR_SUFFIX):
            continue
        result = parse_sidecar(sidecar_key(name), archive.read_bytes(name))
        if not result.ok:
            logger.warning("sidecar_parse_warning", entry=name, error=result.error)
            continue
        if result.data is not None:
            lookup[result.key] = result.data
    return lookup


def collect_sidecar_metadata(
    attachments: list[dict[str, Any]] | None, lookup: SidecarLookup
) -> SidecarMetadata:
    """Merge the sidecars referenced by a result's metadata attachments."""
    merged = SidecarMetadata()
    for attachment in attachments or []:
        if attachment.get("contentType") != METADATA_CONTENT_TYPE or not attachment.get("path"):
            continue
        data = lookup.get(sidecar_key(attachment["path"]))
        if data:
            merged.merge(data)
    return merged
