"""Content fingerprint used for duplicate-run detection.

The digest covers only the intrinsic outcome of each test: its file, name
and final status. Durations, timestamps, worker indices, attachments,
screenshots and caller-supplied run context (environment, trigger, branch,
commit) are excluded, so re-encoding images or stripping traces from an
archive does not change the fingerprint.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable

from runledger.core.models import TestRecord

FINGERPRINT_LENGTH = 64


def _projection(record: TestRecord) -> dict[str, str]:
    return {"file": record.file, "name": record.name, "status": record.status.value}


def _sort_key(entry: dict[str, str]) -> tuple[str, str]:
    # Status breaks ties between records sharing file and name (e.g. one per browser)
    return (f"{entry['file']}:{entry['name']}", entry["status"])


def serialize_for_fingerprint(records: Iterable[TestRecord]) -> str:
    """Return the canonical JSON document that the fingerprint is computed over."""
    projected = sorted((_projection(r) for r in records), key=_sort_key)
    return json.dumps(
        {"tests": projected},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def calculate_fingerprint(records: Iterable[TestRecord]) -> str:
    """Compute the SHA-256 content fingerprint of a set of test records.

    Args:
        records: Normalized test records, in any order.

    Returns:
        Lowercase hex digest (64 characters).
    """
    payload = serialize_for_fingerprint(records)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def is_valid_fingerprint(value: str) -> bool:
    """Check whether a caller-supplied value looks like a fingerprint."""
    if len(value) != FINGERPRINT_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in value)


def require_valid_fingerprint(value: str) -> str:
    """Return ``value`` unchanged if it is a well-formed fingerprint.

    Raises:
        ValueError: If the value is not 64 lowercase hex characters.
    """
    if not is_valid_fingerprint(value):
        raise ValueError(f"Invalid fingerprint {value!r}: expected 64 lowercase hex characters")
    return value
